import pytest

from src.utils.performance import get_performance_summary, monitor_performance, reset_metrics


@pytest.fixture(autouse=True)
def clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


def test_summary_is_empty_before_any_call():
    summary = get_performance_summary()
    assert summary.empty
    assert "avg_time" in summary.columns


def test_successful_and_failing_calls_are_counted():
    @monitor_performance(slow_threshold=10.0)
    def flaky(fail):
        if fail:
            raise ValueError("nope")
        return "ok"

    assert flaky(False) == "ok"
    with pytest.raises(ValueError):
        flaky(True)

    row = get_performance_summary().iloc[0]
    assert row["function_name"].endswith(".flaky")
    assert row["call_count"] == 2
    assert row["error_rate"] == 50.0


def test_slow_calls_are_logged(caplog):
    @monitor_performance(slow_threshold=-1.0, log_memory=True)
    def instant():
        return 1

    with caplog.at_level("WARNING", logger="src.utils.performance"):
        instant()

    assert any("SLOW" in record.message for record in caplog.records)
