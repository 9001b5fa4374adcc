# test_metrics_logger.py
#
# Imports
import json
import pytest
#
# Third-Party Imports
from loguru import logger
#
# Local Imports
from gridsync.Logging_Config import setup_logger
from gridsync.Metrics.metrics_logger import METRIC_LEVEL, MetricsLogger, timeit
#
########################################################################################################################
#
# Functions:

@pytest.fixture
def metric_records():
    records = []
    sink_id = logger.add(
        lambda message: records.append(message.record),
        level=METRIC_LEVEL,
        filter=lambda record: "event" in record["extra"],
    )
    yield records
    logger.remove(sink_id)


def test_counter_carries_base_labels(metric_records):
    metrics = MetricsLogger(base_labels={"dataset": "customers"})
    metrics.log_counter("gridsync_rows_fetched_total", 4, labels={"mode": "full"})

    (record,) = metric_records
    assert record["level"].name == METRIC_LEVEL
    assert record["extra"]["event"] == "gridsync_rows_fetched_total"
    assert record["extra"]["type"] == "counter"
    assert record["extra"]["value"] == 4
    assert record["extra"]["labels"] == {"dataset": "customers", "mode": "full"}


def test_timeit_sync_function(metric_records):
    @timeit(metric_name="parse_seconds")
    def parse():
        return 42

    assert parse() == 42
    assert metric_records[0]["extra"]["event"] == "parse_seconds"
    assert metric_records[0]["extra"]["labels"]["status"] == "success"


@pytest.mark.asyncio
async def test_timeit_coroutine_records_failure(metric_records):
    @timeit()
    async def fetch():
        raise RuntimeError("offline")

    with pytest.raises(RuntimeError):
        await fetch()

    (record,) = metric_records
    assert record["extra"]["event"] == "fetch_duration_seconds"
    assert record["extra"]["labels"] == {"function": "fetch", "status": "failure"}
    assert record["extra"]["value"] >= 0


def test_metrics_file_only_gets_metric_records(tmp_path):
    metrics_path = tmp_path / "logs" / "metrics.json"
    setup_logger(log_level="INFO", metrics_log_path=metrics_path)
    try:
        logger.info("plain application message")
        MetricsLogger().log_gauge("gridsync_in_flight", 1)
        logger.complete()
    finally:
        logger.remove()

    lines = [json.loads(line) for line in metrics_path.read_text(encoding="utf-8").splitlines() if line.strip()]
    assert len(lines) == 1
    assert lines[0]["record"]["extra"]["event"] == "gridsync_in_flight"

#
# End of test_metrics_logger.py
########################################################################################################################
