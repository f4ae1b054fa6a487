"""
Repositories de broadcasts.

- CampaignStore: campanhas e transicoes de status atomicas
- RecipientRepository: snapshot e resultado por destinatario
- AudienceRepository: dados de usuarios para segmentacao e envio

Toda transicao de status e um UPDATE condicionado ao status atual
(`.in_("status", [...])`). Zero linhas afetadas significa que outro
processo chegou antes: ConflictError, sem retry.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.decorators import handle_errors
from app.core.exceptions import ConflictError, DatabaseError, NotFoundError
from app.core.timezone import agora_utc, para_utc
from app.services.broadcasts.constants import (
    COLUNA_ENDERECO,
    LOTE_IN_FILTER,
    RPC_PERFIS_ATIVIDADE,
    TABLE_BROADCASTS,
    TABLE_RECIPIENTS,
    TABLE_USERS,
    TAMANHO_PAGINA_DB,
)
from app.services.broadcasts.types import (
    STATUS_ENVIAVEIS,
    ActivityProfile,
    AudienceSegment,
    Campaign,
    CampaignDetails,
    CampaignPage,
    CampaignStatus,
    DeliveryStatus,
    DispatchTotals,
    Recipient,
    RecipientCounts,
)
from app.services.supabase import supabase

logger = logging.getLogger(__name__)

# Escritas por destinatario: retry curto em erro de banco
retry_escrita = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    retry=retry_if_exception_type(DatabaseError),
    reraise=True,
)


def _valores(statuses: Iterable[CampaignStatus]) -> List[str]:
    return [s.value for s in statuses]


class CampaignStore:
    """Repository de campanhas de broadcast."""

    TABLE = TABLE_BROADCASTS

    @handle_errors()
    async def create(
        self,
        title: str,
        body: str,
        target_user_ids: Optional[List[int]] = None,
        target_segment: Optional[AudienceSegment] = None,
        created_by: Optional[str] = None,
    ) -> Campaign:
        """
        Cria campanha em draft.

        Args:
            title: Titulo (renderizado em negrito)
            body: Corpo da mensagem
            target_user_ids: Lista explicita de usuarios (tem precedencia)
            target_segment: Segmento nomeado
            created_by: Operador que criou

        Returns:
            Campaign criada
        """
        data = {
            "title": title,
            "body": body,
            "status": CampaignStatus.DRAFT.value,
            "target_user_ids": list(target_user_ids or []),
            "target_segment": target_segment.value if target_segment else None,
            "created_by": created_by,
        }

        response = supabase.table(self.TABLE).insert(data).execute()
        if not response.data:
            raise DatabaseError("Insert de campanha nao retornou linha")

        campaign = Campaign.from_db_row(response.data[0])
        logger.info(
            f"[Store] Campanha {campaign.id} criada em draft",
            extra={"campaign_id": campaign.id},
        )
        return campaign

    @handle_errors()
    async def get(self, campaign_id: int) -> Campaign:
        """
        Busca campanha por ID.

        Raises:
            NotFoundError: Se nao existe
        """
        response = (
            supabase.table(self.TABLE).select("*").eq("id", campaign_id).limit(1).execute()
        )
        if not response.data:
            raise NotFoundError("Campanha", str(campaign_id))
        return Campaign.from_db_row(response.data[0])

    async def get_details(self, campaign_id: int) -> CampaignDetails:
        """
        Campanha com contagem ao vivo dos destinatarios.

        Durante o envio os contadores da campanha ainda estao zerados;
        a contagem vem das linhas de destinatario.
        """
        campaign = await self.get(campaign_id)
        counts = await recipient_repository.count_by_status(campaign_id)
        return CampaignDetails(campaign=campaign, recipients=counts)

    @handle_errors()
    async def list(
        self,
        status: Optional[CampaignStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> CampaignPage:
        """
        Lista campanhas, mais recentes primeiro.

        Args:
            status: Filtrar por status
            page: Pagina (1-based)
            limit: Itens por pagina

        Returns:
            CampaignPage com total para paginacao
        """
        offset = (page - 1) * limit

        query = supabase.table(self.TABLE).select("*", count="exact")
        if status:
            query = query.eq("status", status.value)

        response = (
            query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
        )

        items = [Campaign.from_db_row(row) for row in (response.data or [])]
        total = response.count if response.count is not None else len(items)
        return CampaignPage(campaigns=items, total=total, page=page, limit=limit)

    @handle_errors()
    async def list_due_scheduled(self, agora: datetime = None) -> List[Campaign]:
        """
        Lista campanhas agendadas cujo horario ja passou.

        Args:
            agora: Datetime atual (default: agora_utc)
        """
        agora = agora or agora_utc()

        response = (
            supabase.table(self.TABLE)
            .select("*")
            .eq("status", CampaignStatus.SCHEDULED.value)
            .lte("scheduled_at", agora.isoformat())
            .order("scheduled_at")
            .execute()
        )

        return [Campaign.from_db_row(row) for row in (response.data or [])]

    async def _transicionar(
        self,
        campaign_id: int,
        data: dict,
        de: Iterable[CampaignStatus],
        para: CampaignStatus,
    ) -> Campaign:
        """
        UPDATE condicionado ao status atual.

        Raises:
            ConflictError: Nenhuma linha no status esperado
            NotFoundError: Campanha nao existe
        """
        data = {**data, "status": para.value, "updated_at": agora_utc().isoformat()}

        response = (
            supabase.table(self.TABLE)
            .update(data)
            .eq("id", campaign_id)
            .in_("status", _valores(de))
            .execute()
        )

        if response.data:
            logger.info(
                f"[Store] Campanha {campaign_id} -> {para.value}",
                extra={"campaign_id": campaign_id, "status": para.value},
            )
            return Campaign.from_db_row(response.data[0])

        # Leitura apenas para a mensagem de erro; a guarda ja foi o UPDATE
        atual = await self.get(campaign_id)
        raise ConflictError(
            f"Campanha {campaign_id} esta em '{atual.status.value}', "
            f"transicao para '{para.value}' recusada",
            campaign_id=campaign_id,
            current_status=atual.status.value,
        )

    @handle_errors()
    async def begin_send(self, campaign_id: int) -> Campaign:
        """
        Reivindica a campanha para envio (draft/scheduled -> sending).

        Compare-and-swap no status: de N chamadas concorrentes, so uma
        recebe a campanha; as demais recebem ConflictError.

        Args:
            campaign_id: ID da campanha

        Returns:
            Campaign ja em sending, com sent_at preenchido

        Raises:
            ConflictError: Campanha ja reivindicada ou terminal
            NotFoundError: Campanha nao existe
        """
        return await self._transicionar(
            campaign_id,
            {"sent_at": agora_utc().isoformat()},
            de=STATUS_ENVIAVEIS,
            para=CampaignStatus.SENDING,
        )

    @handle_errors()
    async def finalize(self, campaign_id: int, totals: DispatchTotals) -> Campaign:
        """
        Conclui a campanha (sending -> completed) gravando os contadores.

        Raises:
            ConflictError: Campanha nao esta em sending
        """
        return await self._transicionar(
            campaign_id,
            {**totals.to_dict(), "completed_at": agora_utc().isoformat()},
            de=(CampaignStatus.SENDING,),
            para=CampaignStatus.COMPLETED,
        )

    @handle_errors()
    async def abort(self, campaign_id: int, totals: Optional[DispatchTotals] = None) -> Campaign:
        """
        Aborta a campanha (sending -> cancelled).

        Args:
            campaign_id: ID da campanha
            totals: Contadores parciais (opcional)

        Raises:
            ConflictError: Campanha nao esta em sending
        """
        data = {"completed_at": agora_utc().isoformat()}
        if totals is not None:
            data.update(totals.to_dict())

        return await self._transicionar(
            campaign_id,
            data,
            de=(CampaignStatus.SENDING,),
            para=CampaignStatus.CANCELLED,
        )

    @handle_errors()
    async def schedule(self, campaign_id: int, scheduled_at: datetime) -> Campaign:
        """
        Agenda (ou reagenda) a campanha.

        Raises:
            ConflictError: Campanha ja saiu de draft/scheduled
        """
        return await self._transicionar(
            campaign_id,
            {"scheduled_at": para_utc(scheduled_at).isoformat()},
            de=STATUS_ENVIAVEIS,
            para=CampaignStatus.SCHEDULED,
        )


class RecipientRepository:
    """Repository das linhas de destinatario (broadcast_recipients)."""

    TABLE = TABLE_RECIPIENTS

    @handle_errors()
    async def create_snapshot(self, campaign_id: int, user_ids: List[int]) -> int:
        """
        Grava todos os destinatarios como pending, em uma unica escrita.

        Args:
            campaign_id: ID da campanha
            user_ids: IDs ja resolvidos (sem duplicatas)

        Returns:
            Quantidade de linhas gravadas
        """
        if not user_ids:
            return 0

        rows = [
            {
                "broadcast_id": campaign_id,
                "user_id": user_id,
                "delivery_status": DeliveryStatus.PENDING.value,
            }
            for user_id in user_ids
        ]

        supabase.table(self.TABLE).insert(rows).execute()
        logger.info(
            f"[Store] Snapshot de {len(rows)} destinatarios gravado para campanha {campaign_id}",
            extra={"campaign_id": campaign_id},
        )
        return len(rows)

    async def _registrar_resultado(self, campaign_id: int, user_id: int, data: dict) -> None:
        # So sai de pending uma vez
        (
            supabase.table(self.TABLE)
            .update(data)
            .eq("broadcast_id", campaign_id)
            .eq("user_id", user_id)
            .eq("delivery_status", DeliveryStatus.PENDING.value)
            .execute()
        )

    @retry_escrita
    @handle_errors()
    async def mark_sent(self, campaign_id: int, user_id: int) -> None:
        """Marca destinatario como enviado."""
        await self._registrar_resultado(
            campaign_id,
            user_id,
            {
                "delivery_status": DeliveryStatus.SENT.value,
                "sent_at": agora_utc().isoformat(),
                "error_message": None,
            },
        )

    @retry_escrita
    @handle_errors()
    async def mark_failed(self, campaign_id: int, user_id: int, reason: str) -> None:
        """Marca destinatario como falho com o motivo."""
        await self._registrar_resultado(
            campaign_id,
            user_id,
            {
                "delivery_status": DeliveryStatus.FAILED.value,
                "error_message": reason,
            },
        )

    @handle_errors()
    async def list_pending_user_ids(self, campaign_id: int) -> List[int]:
        """
        Lista usuarios ainda pending (retomada de envio).

        Pagina em blocos de TAMANHO_PAGINA_DB por causa do max-rows do PostgREST.
        """
        user_ids: List[int] = []
        offset = 0

        while True:
            response = (
                supabase.table(self.TABLE)
                .select("user_id")
                .eq("broadcast_id", campaign_id)
                .eq("delivery_status", DeliveryStatus.PENDING.value)
                .order("user_id")
                .range(offset, offset + TAMANHO_PAGINA_DB - 1)
                .execute()
            )
            rows = response.data or []
            user_ids.extend(row["user_id"] for row in rows)

            if len(rows) < TAMANHO_PAGINA_DB:
                return user_ids
            offset += TAMANHO_PAGINA_DB

    @handle_errors()
    async def count_by_status(self, campaign_id: int) -> RecipientCounts:
        """Conta destinatarios por status de entrega."""
        counts = RecipientCounts()

        for status in DeliveryStatus:
            response = (
                supabase.table(self.TABLE)
                .select("user_id", count="exact")
                .eq("broadcast_id", campaign_id)
                .eq("delivery_status", status.value)
                .limit(1)
                .execute()
            )
            setattr(counts, status.value, response.count or 0)

        return counts

    @handle_errors()
    async def list(
        self,
        campaign_id: int,
        status: Optional[DeliveryStatus] = None,
        page: int = 1,
        limit: int = 50,
    ) -> List[Recipient]:
        """
        Lista destinatarios de uma campanha.

        Args:
            campaign_id: ID da campanha
            status: Filtrar por status de entrega
            page: Pagina (1-based)
            limit: Itens por pagina
        """
        offset = (page - 1) * limit

        query = supabase.table(self.TABLE).select("*").eq("broadcast_id", campaign_id)
        if status:
            query = query.eq("delivery_status", status.value)

        response = query.order("user_id").range(offset, offset + limit - 1).execute()
        return [Recipient.from_db_row(row) for row in (response.data or [])]


class AudienceRepository:
    """Leitura de usuarios para segmentacao e envio."""

    @handle_errors()
    async def list_activity_profiles(self, agora: datetime = None) -> List[ActivityProfile]:
        """
        Perfis de atividade de todos os usuarios com endereco de canal.

        A RPC agrega eventos por usuario relativo a `agora`; os predicados
        de segmento rodam no AudienceResolver.
        """
        agora = agora or agora_utc()
        perfis: List[ActivityProfile] = []
        offset = 0

        while True:
            response = (
                supabase.rpc(RPC_PERFIS_ATIVIDADE, {"p_now": agora.isoformat()})
                .range(offset, offset + TAMANHO_PAGINA_DB - 1)
                .execute()
            )
            rows = response.data or []
            perfis.extend(ActivityProfile.from_db_row(row) for row in rows)

            if len(rows) < TAMANHO_PAGINA_DB:
                return perfis
            offset += TAMANHO_PAGINA_DB

    @handle_errors()
    async def get_addresses(self, user_ids: List[int]) -> Dict[int, Optional[str]]:
        """
        Busca endereco de canal de cada usuario.

        Usuarios inexistentes ficam fora do dict; usuarios sem endereco
        ficam com None.
        """
        enderecos: Dict[int, Optional[str]] = {}

        for inicio in range(0, len(user_ids), LOTE_IN_FILTER):
            lote = user_ids[inicio:inicio + LOTE_IN_FILTER]
            response = (
                supabase.table(TABLE_USERS)
                .select(f"id, {COLUNA_ENDERECO}")
                .in_("id", lote)
                .execute()
            )
            for row in response.data or []:
                endereco = row.get(COLUNA_ENDERECO)
                enderecos[row["id"]] = str(endereco) if endereco else None

        return enderecos

    async def get_address(self, user_id: int) -> Optional[str]:
        """Endereco de canal de um usuario (None se inexistente ou sem endereco)."""
        enderecos = await self.get_addresses([user_id])
        return enderecos.get(user_id)


campaign_store = CampaignStore()
recipient_repository = RecipientRepository()
audience_repository = AudienceRepository()
