from __future__ import annotations

import time

from marketplace.metrics import (
    metrics_snapshot,
    record_deposit,
    record_error,
    record_payment,
    record_tx_retry,
    reset_metrics_for_tests,
)


def test_metrics_snapshot_counts():
    reset_metrics_for_tests()
    record_payment(True)
    record_payment(True)
    record_payment(False)
    record_deposit(False)
    record_tx_retry()
    record_error(time.time() - 4000)  # pruned from 1h window
    record_error(time.time())

    snap = metrics_snapshot()
    assert snap["payments_succeeded"] == 2
    assert snap["payments_rejected"] == 1
    assert snap["deposits_succeeded"] == 0
    assert snap["deposits_rejected"] == 1
    assert snap["transaction_retries"] == 1
    assert snap["errors_last_hour"] == 1


def test_reset_clears_everything():
    record_payment(True)
    reset_metrics_for_tests()
    assert all(v == 0 for v in metrics_snapshot().values())
