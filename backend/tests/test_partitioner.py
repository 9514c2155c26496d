"""
Partitioner - primeiro pedido, primeiro servido / round-robin
"""

from services.partitioner import partition_by_quota, partition_evenly, quota_for


class TestPartitionByQuota:
    def test_first_consultant_filled_first(self):
        leads = ["L1", "L2", "L3", "L4", "L5"]
        result = partition_by_quota(leads, ["c1", "c2"], 3)
        assert result == {"c1": ["L1", "L2", "L3"], "c2": ["L4", "L5"]}

    def test_later_consultants_may_get_nothing(self):
        result = partition_by_quota(["L1", "L2"], ["c1", "c2", "c3"], 2)
        assert quota_for(result) == {"c1": 2, "c2": 0, "c3": 0}

    def test_surplus_stays_out(self):
        leads = [f"L{i}" for i in range(10)]
        result = partition_by_quota(leads, ["c1", "c2"], 2)
        assert sum(quota_for(result).values()) == 4

    def test_no_lead_twice(self):
        leads = [f"L{i}" for i in range(7)]
        result = partition_by_quota(leads, ["c1", "c2", "c3"], 3)
        flat = [lid for ids in result.values() for lid in ids]
        assert len(flat) == len(set(flat)) == 7

    def test_duplicate_consultant_collapsed(self):
        result = partition_by_quota(["L1", "L2", "L3"], ["c1", "c1", "c2"], 2)
        assert result == {"c1": ["L1", "L2"], "c2": ["L3"]}

    def test_zero_quantity(self):
        assert partition_by_quota(["L1"], ["c1"], 0) == {"c1": []}


class TestPartitionEvenly:
    def test_contiguous_blocks_remainder_first(self):
        result = partition_evenly(["L1", "L2", "L3", "L4", "L5"], ["c1", "c2"])
        assert result == {"c1": ["L1", "L2", "L3"], "c2": ["L4", "L5"]}

    def test_fewer_leads_than_consultants(self):
        result = partition_evenly(["L1"], ["a", "b"])
        assert result == {"a": ["L1"], "b": []}

    def test_sizes_differ_by_at_most_one(self):
        result = partition_evenly([f"L{i}" for i in range(11)], ["a", "b", "c"])
        sizes = quota_for(result).values()
        assert max(sizes) - min(sizes) <= 1

    def test_no_consultants(self):
        assert partition_evenly(["L1"], []) == {}
