"""
Resolucao de audiencia de broadcasts.

Lista explicita de usuarios tem precedencia e e usada como veio (sem
filtrar por endereco: usuario sem endereco vira falha no envio). Sem
lista, aplica o segmento nomeado sobre os perfis de atividade.

Segmentos (relativos a `agora`):
- all: todo usuario com endereco de canal
- active: algum evento nos ultimos 30 dias
- new_users: conta criada nos ultimos 30 dias
- at_risk: ultimo evento entre 60 e 30 dias atras (exclusivo)
- churned: nenhum evento nos ultimos 60 dias (inclui quem nunca teve)
- power_users: 50+ eventos nos ultimos 30 dias
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List

from app.core.timezone import agora_utc
from app.services.broadcasts.constants import (
    JANELA_INATIVO_DIAS,
    JANELA_RECENTE_DIAS,
    LIMIAR_POWER_USERS,
)
from app.services.broadcasts.repository import AudienceRepository, audience_repository
from app.services.broadcasts.types import ActivityProfile, AudienceSegment, Campaign

logger = logging.getLogger(__name__)


def _corte_recente(agora: datetime) -> datetime:
    return agora - timedelta(days=JANELA_RECENTE_DIAS)


def _corte_inativo(agora: datetime) -> datetime:
    return agora - timedelta(days=JANELA_INATIVO_DIAS)


def _todos(perfil: ActivityProfile, agora: datetime) -> bool:
    return True


def _ativo(perfil: ActivityProfile, agora: datetime) -> bool:
    return perfil.last_activity_at is not None and perfil.last_activity_at >= _corte_recente(agora)


def _novo(perfil: ActivityProfile, agora: datetime) -> bool:
    return perfil.created_at is not None and perfil.created_at >= _corte_recente(agora)


def _em_risco(perfil: ActivityProfile, agora: datetime) -> bool:
    if perfil.last_activity_at is None:
        return False
    return _corte_inativo(agora) < perfil.last_activity_at < _corte_recente(agora)


def _churned(perfil: ActivityProfile, agora: datetime) -> bool:
    return perfil.last_activity_at is None or perfil.last_activity_at < _corte_inativo(agora)


def _power_user(perfil: ActivityProfile, agora: datetime) -> bool:
    return perfil.events_last_30d >= LIMIAR_POWER_USERS


PREDICADOS: Dict[AudienceSegment, Callable[[ActivityProfile, datetime], bool]] = {
    AudienceSegment.ALL: _todos,
    AudienceSegment.ACTIVE: _ativo,
    AudienceSegment.NEW_USERS: _novo,
    AudienceSegment.AT_RISK: _em_risco,
    AudienceSegment.CHURNED: _churned,
    AudienceSegment.POWER_USERS: _power_user,
}


def filtrar_segmento(
    perfis: List[ActivityProfile],
    segmento: AudienceSegment,
    agora: datetime,
) -> List[int]:
    """
    Aplica o predicado do segmento.

    Args:
        perfis: Perfis de atividade
        segmento: Segmento nomeado
        agora: Referencia das janelas

    Returns:
        IDs dos usuarios no segmento, na ordem dos perfis
    """
    predicado = PREDICADOS[segmento]
    return [p.user_id for p in perfis if predicado(p, agora)]


class AudienceResolver:
    """Transforma o alvo da campanha em lista concreta de user IDs."""

    def __init__(self, repository: AudienceRepository = None):
        self.repository = repository or audience_repository

    async def resolve(self, campaign: Campaign, agora: datetime = None) -> List[int]:
        """
        Resolve destinatarios da campanha.

        Args:
            campaign: Campanha com target_user_ids e/ou target_segment
            agora: Referencia das janelas (default: agora_utc)

        Returns:
            Lista de user IDs sem duplicatas
        """
        if campaign.has_explicit_targets:
            # Mesma ordem, sem duplicatas (destinatario e unico por campanha)
            user_ids = list(dict.fromkeys(campaign.target_user_ids))
            logger.info(
                f"[Audience] Campanha {campaign.id}: {len(user_ids)} destinatarios explicitos",
                extra={"campaign_id": campaign.id},
            )
            return user_ids

        segmento = campaign.target_segment or AudienceSegment.ALL
        agora = agora or agora_utc()

        perfis = await self.repository.list_activity_profiles(agora)
        user_ids = filtrar_segmento(perfis, segmento, agora)

        logger.info(
            f"[Audience] Campanha {campaign.id}: segmento '{segmento.value}' "
            f"resolveu {len(user_ids)} de {len(perfis)} usuarios",
            extra={"campaign_id": campaign.id},
        )
        return user_ids


audience_resolver = AudienceResolver()
