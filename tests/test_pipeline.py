from datetime import date

import pytest

from ledger_import import (
    AccountNotFound,
    AmountParseError,
    CanonicalTransaction,
    DateParseError,
    ExistingTransaction,
    FetchFailed,
    FetchOk,
    InputFormatError,
    LedgerCommitError,
    LedgerQueryError,
    NoAccountsAvailable,
    ReconciliationPipeline,
    load_source_records,
    resolve_date_range,
)
from tests.helpers.ledger import FakeLedger, ScriptedDecisions, payload, source_record


def _pipeline(ledger, decide=None, account_name="Checking"):
    return ReconciliationPipeline(
        ledger, account_name=account_name, decide=decide or ScriptedDecisions()
    )


BATCH = payload(
    source_record("15-03-2024 10:00:00", "100", "D", "COFFEE", corresponsive_name=""),
    source_record("16-03-2024 08:30:00", "2,500", "C", "REFUND", corresponsive_name="SHOP A"),
    source_record("17-03-2024 19:45:00", "40", "D", "TAXI"),
)


# ---- validation ------------------------------------------------------------------


@pytest.mark.parametrize(
    "bad",
    [
        "{not json",
        "[]",
        '{"items": []}',
        '{"transactions": {}}',
        '{"transactions": []}',
        '{"transactions": ["oops"]}',
        '{"transactions": [{"processDate": "15-03-2024", "amount": "1", "dorC": "D"}]}',
        '{"transactions": [{"processDate": "15-03-2024", "amount": 1, "dorC": "D", "remark": "x"}]}',
    ],
)
def test_invalid_payload_aborts_before_ledger_access(bad):
    ledger = FakeLedger()
    with pytest.raises(InputFormatError):
        _pipeline(ledger).run(bad)
    assert ledger.range_queries == []
    assert ledger.import_calls == []


def test_load_source_records_accepts_decoded_mapping_and_extra_keys():
    records = load_source_records(
        {"transactions": [source_record(channel="MOBILE", refNo="FT123")]}
    )
    assert len(records) == 1
    assert records[0].remark == "COFFEE SHOP"
    assert records[0].corresponsive_name is None


def test_non_utf8_bytes_are_an_input_format_error():
    ledger = FakeLedger()
    with pytest.raises(InputFormatError, match="Invalid JSON input"):
        _pipeline(ledger).run(b'{"transactions": ["\xff\xfe caf\xe9"]}')
    assert ledger.range_queries == []


def test_malformed_record_error_names_the_field():
    with pytest.raises(InputFormatError, match="remark"):
        load_source_records('{"transactions": [{"processDate": "x", "amount": "1", "dorC": "D"}]}')


# ---- range resolution ---------------------------------------------------------------


def test_range_uses_first_and_last_record_in_batch_order():
    records = load_source_records(BATCH)
    assert resolve_date_range(records) == ("2024-03-15", "2024-03-17")


def test_range_is_not_sorted_for_reverse_batches():
    records = load_source_records(
        payload(source_record("20-03-2024 00:00:00"), source_record("10-03-2024 00:00:00"))
    )
    assert resolve_date_range(records) == ("2024-03-20", "2024-03-10")


def test_existing_lookup_spans_resolved_range_for_every_account():
    ledger = FakeLedger(accounts=[("a", "Checking"), ("b", "Savings")])
    _pipeline(ledger).run(BATCH)
    assert ledger.range_queries == [
        ("a", date(2024, 3, 15), date(2024, 3, 17)),
        ("b", date(2024, 3, 15), date(2024, 3, 17)),
    ]


# ---- normalization and commit -----------------------------------------------------


def test_clean_batch_is_committed_in_one_call():
    ledger = FakeLedger()
    decide = ScriptedDecisions()
    report = _pipeline(ledger, decide).run(BATCH)

    expected = [
        CanonicalTransaction("2024-03-15", -10000, "COFFEE", "COFFEE", True),
        CanonicalTransaction("2024-03-16", 250000, "SHOP A", "REFUND", True),
        CanonicalTransaction("2024-03-17", -4000, "TAXI", "TAXI", True),
    ]
    assert ledger.import_calls == [("acc-1", expected)]
    assert list(report.accepted) == expected
    assert report.committed is True
    assert report.account_id == "acc-1"
    assert report.overlaps == 0
    assert report.skipped == ()
    assert report.date_range == ("2024-03-15", "2024-03-17")
    assert decide.questions == []


def test_commit_targets_account_matched_by_exact_name():
    ledger = FakeLedger(accounts=[("a", "checking"), ("b", "Checking"), ("c", "Checking 2")])
    report = _pipeline(ledger).run(BATCH)
    assert [acc for acc, _ in ledger.import_calls] == ["b"]
    assert report.account_id == "b"


# ---- duplicate resolution ---------------------------------------------------------


def _ledger_with_coffee_and_taxi():
    return FakeLedger(
        existing={
            "acc-1": [
                ExistingTransaction(date="2024-03-15", amount=-10000),
                ExistingTransaction(date="2024-03-17", amount=-4000),
            ]
        }
    )


def test_declined_overlap_is_skipped_entirely():
    ledger = _ledger_with_coffee_and_taxi()
    decide = ScriptedDecisions(False, False)
    report = _pipeline(ledger, decide).run(BATCH)

    assert decide.questions == [
        "Transaction on 2024-03-15 for -10000 already exists. Overwrite?",
        "Transaction on 2024-03-17 for -4000 already exists. Overwrite?",
    ]
    assert [t.notes for t in report.accepted] == ["REFUND"]
    assert [t.notes for t in report.skipped] == ["COFFEE", "TAXI"]
    assert report.overlaps == 2
    assert ledger.import_calls[0][1] == list(report.accepted)


def test_approved_overlap_is_kept_in_input_order():
    ledger = _ledger_with_coffee_and_taxi()
    report = _pipeline(ledger, ScriptedDecisions(True, False)).run(BATCH)
    assert [t.notes for t in report.accepted] == ["COFFEE", "REFUND"]
    assert [t.notes for t in report.skipped] == ["TAXI"]


def test_decision_function_receives_default_no():
    seen = []

    def decide(message, default):
        seen.append(default)
        return default

    _pipeline(_ledger_with_coffee_and_taxi(), decide).run(BATCH)
    assert seen == [False, False]


def test_overlap_found_in_any_account():
    ledger = FakeLedger(
        accounts=[("a", "Checking"), ("b", "Savings")],
        existing={"b": [ExistingTransaction(date="2024-03-16", amount=250000)]},
    )
    decide = ScriptedDecisions(False)
    report = _pipeline(ledger, decide).run(BATCH)
    assert len(decide.questions) == 1
    assert [t.notes for t in report.accepted] == ["COFFEE", "TAXI"]


def test_all_overlaps_declined_means_no_commit():
    ledger = FakeLedger(
        existing={
            "acc-1": [
                ExistingTransaction(date="2024-03-15", amount=-10000),
                ExistingTransaction(date="2024-03-16", amount=250000),
                ExistingTransaction(date="2024-03-17", amount=-4000),
            ]
        }
    )
    report = _pipeline(ledger, ScriptedDecisions(default=False)).run(BATCH)
    assert ledger.import_calls == []
    assert report.committed is False
    assert report.account_id is None
    assert report.accepted == ()
    assert len(report.skipped) == 3


def test_second_run_with_declines_writes_nothing():
    ledger = FakeLedger()
    first = _pipeline(ledger).run(BATCH)
    assert len(ledger.import_calls) == 1

    decide = ScriptedDecisions(default=False)
    second = _pipeline(ledger, decide).run(BATCH)

    assert len(ledger.import_calls) == 1
    assert second.committed is False
    assert len(decide.questions) == 3
    # Everything the second run skipped is exactly what the first run accepted.
    assert second.skipped == first.accepted


# ---- failures ---------------------------------------------------------------------


def test_missing_account_fails_without_import_call():
    ledger = FakeLedger(accounts=[("a", "Savings")])
    with pytest.raises(AccountNotFound, match="Checking"):
        _pipeline(ledger).run(BATCH)
    assert ledger.import_calls == []


def test_empty_ledger_reports_no_accounts():
    ledger = FakeLedger(accounts=[])
    with pytest.raises(NoAccountsAvailable):
        _pipeline(ledger).run(BATCH)
    assert ledger.import_calls == []


def test_query_failure_degrades_to_empty_existing_set():
    ledger = FakeLedger(
        existing={"acc-1": [ExistingTransaction(date="2024-03-15", amount=-10000)]},
        fail_queries=True,
    )
    decide = ScriptedDecisions()
    report = _pipeline(ledger, decide).run(BATCH)

    assert report.existing_fetch_failed is True
    assert decide.questions == []
    assert len(report.accepted) == 3
    assert report.committed is True


def test_gateway_defects_are_not_absorbed_by_existing_lookup():
    class BrokenLedger(FakeLedger):
        def list_transactions(self, account_id, start, end):
            raise AttributeError("'NoneType' object has no attribute 'rows'")

    ledger = BrokenLedger()
    with pytest.raises(AttributeError):
        _pipeline(ledger).run(BATCH)
    assert ledger.import_calls == []


def test_fetch_existing_returns_explicit_failure_value():
    result = _pipeline(FakeLedger(fail_queries=True)).fetch_existing("2024-03-15", "2024-03-17")
    assert isinstance(result, FetchFailed)
    assert isinstance(result.error, LedgerQueryError)
    assert isinstance(result.error.__cause__, ConnectionError)


def test_fetch_existing_returns_rows_in_range():
    ledger = FakeLedger(
        existing={
            "acc-1": [
                ExistingTransaction(date="2024-03-14", amount=1),
                ExistingTransaction(date="2024-03-15", amount=2),
            ]
        }
    )
    result = _pipeline(ledger).fetch_existing("2024-03-15", "2024-03-17")
    assert isinstance(result, FetchOk)
    assert [t.amount for t in result.transactions] == [2]


def test_commit_failure_surfaces_as_ledger_commit_error():
    ledger = FakeLedger(fail_import=True)
    with pytest.raises(LedgerCommitError):
        _pipeline(ledger).run(BATCH)
    assert len(ledger.import_calls) == 1


def test_bad_amount_aborts_remaining_records():
    ledger = FakeLedger()
    decide = ScriptedDecisions()
    batch = payload(
        source_record("15-03-2024 10:00:00", "100"),
        source_record("16-03-2024 10:00:00", "n/a"),
        source_record("17-03-2024 10:00:00", "300"),
    )
    with pytest.raises(AmountParseError):
        _pipeline(ledger, decide).run(batch)
    assert ledger.import_calls == []


def test_bad_date_in_middle_record_aborts_before_commit():
    ledger = FakeLedger()
    batch = payload(
        source_record("15-03-2024 10:00:00"),
        source_record("2024/03/16 10:00:00"),
        source_record("17-03-2024 10:00:00"),
    )
    with pytest.raises(DateParseError):
        _pipeline(ledger).run(batch)
    assert ledger.import_calls == []


def test_bad_first_date_aborts_before_ledger_access():
    ledger = FakeLedger()
    with pytest.raises(DateParseError):
        _pipeline(ledger).run(payload(source_record("garbage")))
    assert ledger.range_queries == []
