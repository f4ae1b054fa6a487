"""Fixtures locais dos testes de broadcasts."""
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import ConflictError
from app.services.broadcasts.types import (
    Campaign,
    CampaignStatus,
    DeliveryStatus,
    RecipientCounts,
)


class FakeRecipients:
    """Linhas de destinatario em memoria (campaign_id, user_id) -> dict."""

    def __init__(self):
        self.rows = {}

    async def create_snapshot(self, campaign_id, user_ids):
        for user_id in user_ids:
            self.rows[(campaign_id, user_id)] = {"status": DeliveryStatus.PENDING, "error": None}
        return len(user_ids)

    async def mark_sent(self, campaign_id, user_id):
        row = self.rows[(campaign_id, user_id)]
        if row["status"] == DeliveryStatus.PENDING:
            row["status"] = DeliveryStatus.SENT

    async def mark_failed(self, campaign_id, user_id, reason):
        row = self.rows[(campaign_id, user_id)]
        if row["status"] == DeliveryStatus.PENDING:
            row["status"] = DeliveryStatus.FAILED
            row["error"] = reason

    async def list_pending_user_ids(self, campaign_id):
        return [
            uid for (cid, uid), row in self.rows.items()
            if cid == campaign_id and row["status"] == DeliveryStatus.PENDING
        ]

    async def count_by_status(self, campaign_id):
        counts = RecipientCounts()
        for (cid, _), row in self.rows.items():
            if cid == campaign_id:
                setattr(counts, row["status"].value, getattr(counts, row["status"].value) + 1)
        return counts

    def status_de(self, campaign_id, user_id):
        return self.rows[(campaign_id, user_id)]["status"]

    def erro_de(self, campaign_id, user_id):
        return self.rows[(campaign_id, user_id)]["error"]


class FakeStore:
    """CampaignStore minimo: so as transicoes a partir de sending."""

    def __init__(self, status=CampaignStatus.SENDING):
        self.status = status
        self.totals = None
        self.finalize = AsyncMock(side_effect=self._finalize)
        self.abort = AsyncMock(side_effect=self._abort)

    async def _transicionar(self, campaign_id, para, totals):
        if self.status != CampaignStatus.SENDING:
            raise ConflictError("fora de sending", campaign_id=campaign_id,
                                current_status=self.status.value)
        self.status = para
        self.totals = totals
        return Campaign(id=campaign_id, title="t", body="b", status=para)

    async def _finalize(self, campaign_id, totals):
        return await self._transicionar(campaign_id, CampaignStatus.COMPLETED, totals)

    async def _abort(self, campaign_id, totals=None):
        return await self._transicionar(campaign_id, CampaignStatus.CANCELLED, totals)


class FakeLeases:
    """DispatchLease em memoria: um pool por campanha."""

    def __init__(self):
        self.ativos = set()

    @asynccontextmanager
    async def hold(self, campaign_id):
        if campaign_id in self.ativos:
            raise ConflictError(
                f"Campanha {campaign_id} ja esta sendo enviada",
                campaign_id=campaign_id,
                current_status=CampaignStatus.SENDING.value,
            )
        self.ativos.add(campaign_id)
        try:
            yield
        finally:
            self.ativos.discard(campaign_id)


@pytest.fixture
def fake_recipients():
    return FakeRecipients()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def fake_leases():
    return FakeLeases()


@pytest.fixture
def cancelamentos():
    """CancelRegistry mockado, sem cancelamento."""
    mock = MagicMock()
    mock.is_requested = AsyncMock(return_value=False)
    mock.request = AsyncMock()
    mock.clear = AsyncMock()
    return mock


@pytest.fixture
def sending_campaign():
    return Campaign(id=1, title="Promo", body="Corpo", status=CampaignStatus.SENDING)
