"""
Prometheus metrics for the keeper.
"""

from prometheus_client import Counter, Gauge, Histogram

checks_total = Counter(
    'paykeeper_checks_total',
    'Funding checks by outcome',
    ['outcome']
)

price_fetch_failures = Counter(
    'paykeeper_price_fetch_failures_total',
    'Checks that ended because the price source was unavailable'
)

contract_read_failures = Counter(
    'paykeeper_contract_read_failures_total',
    'Checks aborted because the contract balance could not be read'
)

policy_errors = Counter(
    'paykeeper_policy_errors_total',
    'Checks aborted because the funding policy was invalid'
)

contract_balance_wei = Gauge(
    'paykeeper_contract_balance_wei',
    'Last observed payroll contract balance in wei'
)

contract_balance_fiat = Gauge(
    'paykeeper_contract_balance_fiat',
    'Last observed payroll contract balance in fiat'
)

asset_price_fiat = Gauge(
    'paykeeper_asset_price_fiat',
    'Last fetched fiat price of the funding asset'
)

last_top_up_wei = Gauge(
    'paykeeper_last_top_up_wei',
    'Value of the last emitted funding instruction in wei'
)

check_duration = Histogram(
    'paykeeper_check_duration_seconds',
    'Duration of a funding check',
    buckets=[0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30]
)
