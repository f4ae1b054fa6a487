"""
Testes do formatter JSON de producao.
"""
import json
import logging

from app.core.logging import JSONFormatter


def _record(**extra):
    record = logging.LogRecord(
        name="app.services.broadcasts.dispatcher",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg="[Dispatch] Falha ao enviar campanha %s",
        args=(7,),
        exc_info=None,
    )
    for chave, valor in extra.items():
        setattr(record, chave, valor)
    return record


class TestJSONFormatter:

    def test_campos_basicos(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "WARNING"
        assert data["message"] == "[Dispatch] Falha ao enviar campanha 7"
        assert data["logger"] == "app.services.broadcasts.dispatcher"
        assert "campaign_id" not in data

    def test_contexto_do_dispatch(self):
        data = json.loads(JSONFormatter().format(_record(campaign_id=7, user_id=3)))

        assert data["campaign_id"] == 7
        assert data["user_id"] == 3
