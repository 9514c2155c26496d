"""
Painéis de leitura - resumo da distribuição e auditoria de qualidade
"""

import asyncio

import pytest

from services.errors import ForbiddenError


def _db_op(coro):
    """Run async DB operation in a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestDistributionSummary:
    def _summary(self, db, actor, office_id=None):
        from services.distribution_summary import get_distribution_summary
        return _db_op(get_distribution_summary(db, actor, "camp1", office_id))

    def test_resumo_counts(self, org, actor):
        org.leads(3)
        org.lead(consultor_id="c1", office_id="off-a", status="FECHADO")
        org.lead(consultor_id="c1", office_id="off-a", status="PERDIDO")
        org.lead(consultor_id="c3", office_id="off-b")

        result = self._summary(org.db, actor("master"))
        assert result["resumo"] == {
            "total": 6, "estoque": 3, "atribuidos": 3, "fechados": 1, "perdidos": 1,
        }

    def test_per_consultant_row(self, org, actor):
        org.lead(
            consultor_id="c1", office_id="off-a", status="EM_CONTATO",
            created_at="2025-01-01T00:00:00+00:00",
            last_activity_at="2025-01-01T01:00:00+00:00",
        )
        org.lead(
            consultor_id="c1", office_id="off-a", status="NOVO",
            created_at="2025-01-01T00:00:00+00:00",
            last_activity_at="2025-01-01T03:00:00+00:00",
        )

        row = self._summary(org.db, actor("master"))["distribution"][0]
        assert row["consultantId"] == "c1"
        assert row["consultantName"] == "C1"
        assert row["officeName"] == "Escritório A"
        assert row["totalAtribuidos"] == 2
        assert row["trabalhados"] == 1
        assert row["restantes"] == 1
        assert row["percentConcluido"] == 50
        # média de 1h e 3h
        assert row["tempoMedioTratativaMs"] == 2 * 3600 * 1000
        assert row["ultimaAtividadeAt"].startswith("2025-01-01T03:00:00")

    def test_scoped_actor_sees_own_offices(self, org, actor):
        org.lead(consultor_id="c1", office_id="off-a")
        org.lead(consultor_id="c3", office_id="off-b")
        org.lead()

        result = self._summary(org.db, actor("gn-a"))
        assert result["resumo"]["total"] == 2
        assert [r["consultantId"] for r in result["distribution"]] == ["c1"]

    def test_office_filter_outside_scope(self, org, actor):
        with pytest.raises(ForbiddenError):
            self._summary(org.db, actor("gn-a"), office_id="off-b")

    def test_rows_sorted_by_office_then_name(self, org, actor):
        org.lead(consultor_id="c3", office_id="off-b")
        org.lead(consultor_id="c2", office_id="off-a")
        org.lead(consultor_id="c1", office_id="off-a")
        rows = self._summary(org.db, actor("master"))["distribution"]
        assert [r["consultantId"] for r in rows] == ["c1", "c2", "c3"]


class TestCampaignAudit:
    def test_counters(self, org):
        from services.distribution_summary import get_campaign_audit
        org.lead(telefone1="")
        org.lead(telefone1="123", telefone2="abc")
        org.lead(documento="111")
        org.lead(documento="111")
        org.lead(documento="222", status="PERDIDO")
        org.lead(documento="222", status="EM_CONTATO")
        org.lead(documento="333")

        result = _db_op(get_campaign_audit(org.db, "camp1"))
        assert result == {"total": 7, "invalidPhones": 2, "duplicated": 2, "invalids": 2}
