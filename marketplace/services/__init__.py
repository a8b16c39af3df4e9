"""
marketplace.services -- Balance-moving operations and paid-job reports.

Each public function runs inside exactly one scoped transaction obtained
from ``marketplace.database.run_in_transaction``.
"""
