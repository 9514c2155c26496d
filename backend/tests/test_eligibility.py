"""
Filtro de elegibilidade - parsing de faturamento, telefones, query e seleção
Run: cd backend && pytest tests/test_eligibility.py -v
"""

import asyncio

import pytest

from config import is_valid_phone, lead_phones, parse_revenue_br
from models.distribution import DistributionFilters
from services.errors import NoEligibleLeadsError


def _db_op(coro):
    """Run async DB operation in a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _select(db, required=None, **kwargs):
    from services.eligibility import select_eligible_leads
    filters = kwargs.pop("filters", DistributionFilters())
    return _db_op(select_eligible_leads(db, "camp1", filters, required=required, **kwargs))


# ═══════════════════════════════════════════════════════════════
# 1. UNIT: parse_revenue_br
# ═══════════════════════════════════════════════════════════════

class TestParseRevenue:
    def test_thousands_and_decimal(self):
        assert parse_revenue_br("50.000,00") == 50000.0
        assert parse_revenue_br("150.000,00") == 150000.0

    def test_currency_prefix(self):
        assert parse_revenue_br("R$ 1.250.000,50") == 1250000.5

    def test_plain_number(self):
        assert parse_revenue_br("9000") == 9000.0
        assert parse_revenue_br(1200) == 1200.0

    def test_unparsable(self):
        assert parse_revenue_br(None) is None
        assert parse_revenue_br("") is None
        assert parse_revenue_br("n/d") is None
        assert parse_revenue_br(",,") is None


# ═══════════════════════════════════════════════════════════════
# 2. UNIT: telefones
# ═══════════════════════════════════════════════════════════════

class TestPhones:
    @pytest.mark.parametrize("phone", [
        "(11) 98765-4321",
        "+55 11 98765-4321",
        "1133334444",
        "12345678",
    ])
    def test_valid(self, phone):
        assert is_valid_phone(phone)

    @pytest.mark.parametrize("phone", ["", "1234567", "abc", "1234567890123456", None])
    def test_invalid(self, phone):
        assert not is_valid_phone(phone)

    def test_lead_phones_skips_blank_fields(self):
        lead = {"telefone": " ", "telefone1": "11 9999-0000", "telefone3": "2133334444"}
        assert lead_phones(lead) == ["11 9999-0000", "2133334444"]

    def test_lead_has_valid_phone(self):
        from services.eligibility import lead_has_valid_phone
        assert lead_has_valid_phone({"telefone1": "abc", "telefone2": "(11) 98765-4321"})
        assert not lead_has_valid_phone({"telefone1": "1234567"})
        assert not lead_has_valid_phone({})


# ═══════════════════════════════════════════════════════════════
# 3. UNIT: build_eligibility_query / predicados
# ═══════════════════════════════════════════════════════════════

class TestQuery:
    def test_defaults_only_new_unassigned(self):
        from services.eligibility import build_eligibility_query
        q = build_eligibility_query("camp1", DistributionFilters())
        assert q == {"campanha_id": "camp1", "status": "NOVO", "consultor_id": None}

    def test_relaxed_filters(self):
        from services.eligibility import build_eligibility_query
        f = DistributionFilters(onlyNew=False, onlyUnassigned=False)
        assert build_eligibility_query("camp1", f) == {"campanha_id": "camp1"}

    def test_explicit_office_is_strict(self):
        from services.eligibility import build_eligibility_query
        q = build_eligibility_query("camp1", DistributionFilters(), office_id="off-a")
        assert q["office_id"] == "off-a"

    def test_implicit_scope_includes_officeless_stock(self):
        from services.eligibility import build_eligibility_query
        q = build_eligibility_query("camp1", DistributionFilters(), office_scope=["off-b", "off-a", "off-a"])
        assert q["office_id"] == {"$in": ["off-a", "off-b", None]}

    def test_page_size(self):
        from services.eligibility import page_size_for
        settings = {"oversample_factor": 2, "oversample_min_extra": 10}
        assert page_size_for(3, settings) == 13
        assert page_size_for(50, settings) == 100

    def test_revenue_bounds_validation(self):
        with pytest.raises(ValueError):
            DistributionFilters(faturamentoMin=10, faturamentoMax=5)

    def test_ignore_invalid_implies_phone_check(self):
        f = DistributionFilters(ignoreInvalidPhones=True)
        assert f.needs_phone_check


# ═══════════════════════════════════════════════════════════════
# 4. SELEÇÃO (mongomock)
# ═══════════════════════════════════════════════════════════════

class TestSelectEligible:
    def test_oldest_first(self, org):
        ids = org.leads(4)
        result = _select(org.db, required=2)
        assert [l["id"] for l in result["candidates"]] == ids
        assert result["available"] == 4

    def test_assigned_and_worked_are_excluded(self, org):
        stock = org.lead()
        org.lead(consultor_id="c1", office_id="off-a")
        org.lead(status="EM_CONTATO")
        result = _select(org.db, required=5)
        assert [l["id"] for l in result["candidates"]] == [stock]

    def test_revenue_min_filter(self, org):
        """50.000,00 fica de fora, 150.000,00 entra"""
        org.lead(vl_fat_presumido="50.000,00")
        rich = org.lead(vl_fat_presumido="150.000,00")
        org.lead(vl_fat_presumido="n/d")
        result = _select(org.db, required=5, filters=DistributionFilters(faturamentoMin=100000))
        assert [l["id"] for l in result["candidates"]] == [rich]

    def test_revenue_max_filter(self, org):
        small = org.lead(vl_fat_presumido="50.000,00")
        org.lead(vl_fat_presumido="150.000,00")
        result = _select(org.db, required=5, filters=DistributionFilters(faturamentoMax=100000))
        assert [l["id"] for l in result["candidates"]] == [small]

    def test_only_with_phone(self, org):
        org.lead(telefone1="")
        with_phone = org.lead(telefone1="", telefone3="abc")
        result = _select(org.db, required=5, filters=DistributionFilters(onlyWithPhone=True))
        assert [l["id"] for l in result["candidates"]] == [with_phone]

    def test_ignore_invalid_phones(self, org):
        org.lead(telefone1="123")
        valid = org.lead(telefone1="123", telefone2="+55 (21) 3333-4444")
        result = _select(org.db, required=5, filters=DistributionFilters(ignoreInvalidPhones=True))
        assert [l["id"] for l in result["candidates"]] == [valid]

    def test_fetches_next_page_when_filters_drop_rows(self, org):
        # página = max(2*2, 2+10) = 12 linhas; as 20 primeiras não têm telefone
        org.leads(20, telefone1="")
        good = org.leads(2)
        result = _select(org.db, required=2, filters=DistributionFilters(onlyWithPhone=True))
        assert [l["id"] for l in result["candidates"]] == good
        assert result["scanned"] == 22

    def test_empty_stock(self, org):
        org.lead(consultor_id="c1")
        with pytest.raises(NoEligibleLeadsError) as exc:
            _select(org.db, required=3)
        assert exc.value.status_code == 409
        assert exc.value.extra["available"] == 0

    def test_filters_empty_everything(self, org):
        org.leads(3, vl_fat_presumido="10,00")
        with pytest.raises(NoEligibleLeadsError) as exc:
            _select(org.db, required=3, filters=DistributionFilters(faturamentoMin=100))
        assert exc.value.extra["available"] == 3
        assert exc.value.message == "Nenhum lead disponível com os filtros aplicados."

    def test_same_input_same_candidates(self, org):
        org.leads(7, vl_fat_presumido="1.000,00")
        filters = DistributionFilters(faturamentoMin=500)
        first = _select(org.db, required=3, filters=filters)
        second = _select(org.db, required=3, filters=filters)
        assert [l["id"] for l in first["candidates"]] == [l["id"] for l in second["candidates"]]

    def test_explicit_office(self, org):
        org.lead(office_id="off-b")
        mine = org.lead(office_id="off-a")
        org.lead()
        result = _select(org.db, required=5, office_id="off-a")
        assert [l["id"] for l in result["candidates"]] == [mine]

    def test_implicit_scope_takes_officeless_stock(self, org):
        org.lead(office_id="off-b")
        mine = org.lead(office_id="off-a")
        loose = org.lead()
        result = _select(org.db, required=5, office_scope=["off-a"])
        assert [l["id"] for l in result["candidates"]] == [mine, loose]

    def test_auto_mode_respects_batch_cap(self, org):
        from services.settings import upsert_setting
        _db_op(upsert_setting(org.db, "distribution", {"max_auto_batch": 3}))
        org.leads(5)
        result = _select(org.db, required=None)
        assert len(result["candidates"]) == 3
        assert result["available"] == 5
