"""
Módulo centralizado para tratamento de timezone.

O projeto armazena e compara tudo em UTC. Janelas de segmento
(30/60 dias) são calculadas a partir de `agora_utc()`.
"""

from datetime import datetime, timezone
from typing import Optional

from dateutil.parser import parse as parse_datetime


TZ_UTC = timezone.utc


def agora_utc() -> datetime:
    """
    Retorna datetime atual em UTC (timezone-aware).

    Returns:
        datetime em UTC com tzinfo
    """
    return datetime.now(TZ_UTC)


def para_utc(dt: datetime) -> datetime:
    """
    Converte datetime para UTC.

    Datetimes naive são assumidos como UTC (formato do PostgREST
    para colunas timestamp sem timezone).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=TZ_UTC)
    return dt.astimezone(TZ_UTC)


def parse_timestamp(valor) -> Optional[datetime]:
    """
    Converte valor vindo do banco (ISO string ou datetime) para datetime UTC.

    Args:
        valor: string ISO 8601, datetime ou None

    Returns:
        datetime UTC ou None
    """
    if valor is None or valor == "":
        return None
    if isinstance(valor, datetime):
        return para_utc(valor)
    return para_utc(parse_datetime(str(valor)))
