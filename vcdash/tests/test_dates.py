from __future__ import annotations

from vcdash.dates import fnv1a_32, redistribute_bulk_dates, synthetic_date


class TestHash:
    def test_known_vectors(self):
        assert fnv1a_32("") == 0x811C9DC5
        assert fnv1a_32("a") == 0xE40C292C


class TestSyntheticDate:
    def test_deterministic(self):
        assert synthetic_date("company-42") == synthetic_date("company-42")

    def test_inside_window(self):
        for i in range(200):
            year, month, day = (int(p) for p in synthetic_date(f"id-{i}").split("-"))
            assert 2022 <= year <= 2025
            assert 1 <= month <= 12
            assert 1 <= day <= 28


class TestRedistribute:
    def _rows(self, n, date="2019-01-01"):
        return [{"id": f"r{i}", "announced_date": date, "date": "Q1 2019"} for i in range(n)]

    def test_cluster_is_spread(self):
        out = redistribute_bulk_dates(self._rows(10))
        assert all(r["announced_date"] != "2019-01-01" for r in out)
        assert all(r["date"].endswith(r["announced_date"][:4]) for r in out)

    def test_below_threshold_untouched(self):
        rows = self._rows(9)
        assert redistribute_bulk_dates(rows) == rows

    def test_same_row_same_date(self):
        first = redistribute_bulk_dates(self._rows(12))
        second = redistribute_bulk_dates(self._rows(12))
        assert [r["announced_date"] for r in first] == [r["announced_date"] for r in second]

    def test_other_rows_pass_through(self):
        rows = self._rows(10) + [{"id": "x", "announced_date": "2024-05-05", "date": "Q2 2024"}]
        out = redistribute_bulk_dates(rows)
        assert out[-1] == {"id": "x", "announced_date": "2024-05-05", "date": "Q2 2024"}
