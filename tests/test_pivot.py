import math
import warnings

import pandas as pd
import pytest

from sales_pivot.pivot import (
    BLANK_ROW_KEY,
    PivotOptions,
    PivotOptionsError,
    SortState,
    bucket_label,
    compute_pivot,
    sort_rows,
)


# ---------------------------------------------------------------------------
# End-to-end scenario
# ---------------------------------------------------------------------------
def test_acme_march_revenue(acme_orders):
    result = compute_pivot(acme_orders, PivotOptions("company", "month", "revenue"))

    assert result.row_keys == ["Acme"]
    assert result.column_keys == ["2025-03"]
    assert result.cell("Acme", "2025-03") == 300
    assert result.row_total("Acme") == 300
    assert result.grand_total == 300
    assert result.skipped == 0


def test_acme_march_order_count_dedups_order_ids(acme_orders):
    result = compute_pivot(acme_orders, PivotOptions("company", "month", "orders"))

    assert result.cell("Acme", "2025-03") == 2
    assert result.grand_total == 2


def test_order_count_many_lines_two_orders(make_line):
    records = [make_line(order_id="X" if i % 2 else "Y") for i in range(9)]
    result = compute_pivot(records, PivotOptions(measure="orders"))

    assert result.cell("Acme", "2025-03") == 2


def test_unit_count_sums_quantity(acme_orders):
    result = compute_pivot(acme_orders, PivotOptions(measure="units"))

    assert result.cell("Acme", "2025-03") == 30


def test_unit_count_integer_quantities_reshape_without_warnings(make_line):
    records = [
        make_line(qty=3, invoice_date="2025-03-03"),
        make_line(order_id="B1", company="Bravo", qty=4, invoice_date="2025-04-03"),
    ]
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        result = compute_pivot(records, PivotOptions(measure="units"))

    assert result.grid.dtypes.eq(float).all()
    assert result.cell("Acme", "2025-04") == 0
    assert result.cell("Bravo", "2025-04") == 4
    assert result.grand_total == 7


def test_average_order_value(acme_orders):
    result = compute_pivot(acme_orders, PivotOptions(measure="aov"))

    assert result.cell("Acme", "2025-03") == pytest.approx(150.0)


# ---------------------------------------------------------------------------
# Totals, density, range
# ---------------------------------------------------------------------------
def test_revenue_grand_total_matches_line_totals(sample_orders):
    result = compute_pivot(sample_orders, PivotOptions("category", "week", "revenue"))

    assert result.grand_total == pytest.approx(sample_orders["total_price"].sum())
    assert result.row_totals.sum() == pytest.approx(result.column_totals.sum())


def test_order_count_totals_match_distinct_orders(sample_orders):
    # every simulated order has one company and one invoice date
    result = compute_pivot(sample_orders, PivotOptions("company", "day", "orders"))

    assert result.grand_total == sample_orders["order_id"].nunique()


def test_grid_is_dense(mixed_orders):
    result = compute_pivot(mixed_orders, PivotOptions("company", "month", "revenue"))

    assert result.grid.shape == (2, 2)
    assert not result.grid.isna().any().any()
    for row in result.row_keys:
        for column in result.column_keys:
            assert math.isfinite(result.cell(row, column))
    assert result.cell("Globex", "2025-03") == 0


def test_totals(mixed_orders):
    result = compute_pivot(mixed_orders, PivotOptions("company", "month", "revenue"))

    assert result.row_total("Acme") == 180
    assert result.row_total("Globex") == 600
    assert result.column_total("2025-03") == 150
    assert result.column_total("2025-04") == 630
    assert result.grand_total == 780
    assert result.value_range == (0.0, 600.0)
    assert not result.value_range.uniform


def test_missing_keys_read_as_zero(mixed_orders):
    result = compute_pivot(mixed_orders)

    assert result.cell("Initech", "2025-03") == 0
    assert result.row_total("Initech") == 0
    assert result.column_total("2030-01") == 0


def test_uniform_value_range(make_line):
    records = [
        make_line(company="Acme", total_price=50.0),
        make_line(order_id="B1", company="Bravo", total_price=50.0),
    ]
    result = compute_pivot(records)

    assert result.value_range == (50.0, 50.0)
    assert result.value_range.uniform


# ---------------------------------------------------------------------------
# Average order value guard
# ---------------------------------------------------------------------------
def test_aov_zero_for_absent_cells(mixed_orders):
    result = compute_pivot(mixed_orders, PivotOptions("company", "month", "aov"))

    assert result.cell("Globex", "2025-03") == 0
    assert result.cell("Globex", "2025-04") == pytest.approx(600.0)
    assert not result.grid.isna().any().any()


def test_aov_zero_when_cell_has_no_order_ids(make_line):
    records = [make_line(order_id=None, total_price=80.0)]
    result = compute_pivot(records, PivotOptions(measure="aov"))

    value = result.cell("Acme", "2025-03")
    assert value == 0
    assert not math.isnan(value)
    assert not math.isinf(value)


# ---------------------------------------------------------------------------
# Empty input and bad records
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("records", [[], None, pd.DataFrame()])
def test_empty_input(records):
    result = compute_pivot(records, PivotOptions(measure="aov"))

    assert result.row_keys == []
    assert result.column_keys == []
    assert result.grid.empty
    assert result.empty
    assert result.grand_total == 0
    assert result.value_range == (0.0, 0.0)


def test_unparseable_date_is_skipped_and_counted(acme_orders, make_line):
    records = pd.concat(
        [acme_orders, pd.DataFrame([make_line(invoice_date="not-a-date", total_price=999.0)])],
        ignore_index=True,
    )
    result = compute_pivot(records)

    assert result.skipped == 1
    assert result.grand_total == 300
    assert result.column_keys == ["2025-03"]


def test_impossible_calendar_date_is_skipped(make_line):
    records = [make_line(invoice_date="2025-02-30"), make_line(invoice_date="2025-02-28")]
    result = compute_pivot(records, PivotOptions(bucket="day"))

    assert result.skipped == 1
    assert result.column_keys == ["2025-02-28"]


def test_all_dates_bad_gives_empty_result(make_line):
    result = compute_pivot([make_line(invoice_date=""), make_line(invoice_date=None)])

    assert result.empty
    assert result.skipped == 2
    assert result.value_range == (0.0, 0.0)


def test_missing_required_column_raises(acme_orders):
    with pytest.raises(KeyError, match="total_price"):
        compute_pivot(acme_orders.drop(columns=["total_price"]))


def test_blank_row_value_gets_placeholder_key(make_line):
    result = compute_pivot([make_line(customer_type=None)], PivotOptions(row_field="customer_type"))

    assert result.row_keys == [BLANK_ROW_KEY]


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------
@pytest.mark.parametrize(
    "kwargs",
    [
        {"row_field": "companyName"},
        {"bucket": "quarter"},
        {"measure": "profit"},
    ],
)
def test_invalid_options_fail_fast(kwargs):
    with pytest.raises(PivotOptionsError):
        PivotOptions(**kwargs)


def test_invalid_options_error_is_value_error():
    with pytest.raises(ValueError):
        PivotOptions(measure="margin")


def test_row_field_projection(mixed_orders):
    result = compute_pivot(mixed_orders, PivotOptions(row_field="customer_type"))

    assert set(result.row_keys) == {"Enterprise", "Retail"}
    assert result.row_total("Retail") == 600


# ---------------------------------------------------------------------------
# Ordering, determinism, purity
# ---------------------------------------------------------------------------
def test_row_keys_keep_encounter_order_and_columns_sort(make_line):
    records = [
        make_line(company="Zeta", invoice_date="2025-05-01"),
        make_line(order_id="B", company="Alpha", invoice_date="2025-01-15"),
        make_line(order_id="C", company="Mid", invoice_date="2025-03-09"),
    ]
    result = compute_pivot(records)

    assert result.row_keys == ["Zeta", "Alpha", "Mid"]
    assert result.column_keys == ["2025-01", "2025-03", "2025-05"]


def test_deterministic(sample_orders):
    options = PivotOptions("company", "week", "aov")
    first = compute_pivot(sample_orders, options)
    second = compute_pivot(sample_orders, options)

    pd.testing.assert_frame_equal(first.grid, second.grid)
    pd.testing.assert_series_equal(first.row_totals, second.row_totals)
    assert first.grand_total == second.grand_total
    assert first.value_range == second.value_range


def test_input_not_mutated(sample_orders):
    before = sample_orders.copy()
    compute_pivot(sample_orders, PivotOptions("category", "day", "units"))

    pd.testing.assert_frame_equal(sample_orders, before)


# ---------------------------------------------------------------------------
# Bucketing
# ---------------------------------------------------------------------------
@pytest.mark.parametrize(
    "value, bucket, expected",
    [
        ("2025-03-15", "day", "2025-03-15"),
        ("2025-03-15", "month", "2025-03"),
        ("2025-01-01", "week", "2025-W01"),
        ("2025-01-04", "week", "2025-W01"),
        ("2025-01-05", "week", "2025-W02"),
        # weeks are tied to 1 January, not ISO-8601 (ISO: 2025-W01 / 2022-W52)
        ("2024-12-31", "week", "2024-W53"),
        ("2023-01-01", "week", "2023-W01"),
        ("2024-12-28", "week", "2024-W52"),
    ],
)
def test_bucket_label(value, bucket, expected):
    assert bucket_label(value, bucket) == expected


def test_bucket_label_converts_offsets_to_utc():
    assert bucket_label("2025-03-31T23:30:00-02:00", "day") == "2025-04-01"
    assert bucket_label("2025-03-31T23:30:00-02:00", "month") == "2025-04"


def test_bucket_label_rejects_bad_input():
    with pytest.raises(ValueError):
        bucket_label("garbage", "day")
    with pytest.raises(PivotOptionsError):
        bucket_label("2025-03-01", "fortnight")


def test_week_columns_sort_chronologically(make_line):
    records = [
        make_line(invoice_date="2025-03-20"),
        make_line(invoice_date="2025-01-02"),
        make_line(invoice_date="2025-02-14"),
    ]
    result = compute_pivot(records, PivotOptions(bucket="week"))

    assert result.column_keys == sorted(result.column_keys)
    assert result.column_keys[0] == "2025-W01"


# ---------------------------------------------------------------------------
# Display sorting
# ---------------------------------------------------------------------------
@pytest.fixture
def tied_result(make_line):
    records = [
        make_line(company="A", total_price=10.0, invoice_date="2025-01-05"),
        make_line(order_id="B", company="B", total_price=20.0, invoice_date="2025-02-05"),
        make_line(order_id="C", company="C", total_price=10.0, invoice_date="2025-01-05"),
    ]
    return compute_pivot(records)


def test_sort_by_row_total_default_descending(tied_result):
    assert sort_rows(tied_result) == ["B", "A", "C"]


def test_sort_ascending_keeps_tie_order(tied_result):
    assert sort_rows(tied_result, SortState(descending=False)) == ["A", "C", "B"]


def test_sort_by_column(tied_result):
    assert sort_rows(tied_result, SortState(key="2025-01")) == ["A", "C", "B"]
    assert sort_rows(tied_result, SortState(key="2025-02")) == ["B", "A", "C"]


def test_sort_by_unknown_column(tied_result):
    with pytest.raises(KeyError):
        sort_rows(tied_result, SortState(key="1999-01"))


def test_sort_state_toggle():
    state = SortState()
    assert state.key == "row_total" and state.descending

    flipped = state.toggle("row_total")
    assert flipped.key == "row_total" and not flipped.descending

    by_column = flipped.toggle("2025-01")
    assert by_column == SortState(key="2025-01", descending=True)

    assert by_column.toggle("2025-01").descending is False
