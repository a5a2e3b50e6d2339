# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Exports voting power accounting metrics in Prometheus format.

Metrics:
- Clock (current block height / timestamp)
- Checkpoint writes, delegation set changes, emitted events
- Total supply, per-delegatee voting power
- Rejected operations by error type
"""

from prometheus_client import Counter, Gauge, CollectorRegistry

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# ENGINE METRICS
# ═══════════════════════════════════════════════════════════════════

clock_value = Gauge(
    'splitvote_clock',
    'Current clock value used for checkpoints',
    registry=metrics_registry
)

checkpoint_writes_total = Counter(
    'splitvote_checkpoint_writes_total',
    'Total number of checkpoint writes',
    ['kind'],
    registry=metrics_registry
)

delegation_changes_total = Counter(
    'splitvote_delegation_changes_total',
    'Total number of delegation set replacements',
    registry=metrics_registry
)

balance_moves_total = Counter(
    'splitvote_balance_moves_total',
    'Total number of balance moves processed',
    ['kind'],
    registry=metrics_registry
)

events_emitted_total = Counter(
    'splitvote_events_emitted_total',
    'Total number of events emitted',
    ['event_type'],
    registry=metrics_registry
)

rejected_operations_total = Counter(
    'splitvote_rejected_operations_total',
    'Operations rejected by validation',
    ['error'],
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# ECONOMIC METRICS
# ═══════════════════════════════════════════════════════════════════

total_supply = Gauge(
    'splitvote_total_supply',
    'Current total supply',
    registry=metrics_registry
)

delegatee_count = Gauge(
    'splitvote_delegatee_count',
    'Number of delegatees with a checkpoint trace',
    registry=metrics_registry
)

delegatee_votes = Gauge(
    'splitvote_delegatee_votes',
    'Current voting power per delegatee',
    ['delegatee'],
    registry=metrics_registry
)


# ═══════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════

def update_metrics(engine):
    """
    Refresh gauges from engine state.
    Called when metrics are scraped. Counters are updated where events happen.

    Args:
        engine: DelegationEngine instance
    """
    from ...protocol.config.params import TOTAL_SUPPLY_KEY

    store = engine.checkpoints

    clock_value.set(engine.clock.now())
    total_supply.set(store.latest(TOTAL_SUPPLY_KEY))

    delegatees = [k for k in store.keys() if k != TOTAL_SUPPLY_KEY]
    delegatee_count.set(len(delegatees))

    for delegatee in delegatees:
        delegatee_votes.labels(delegatee=delegatee).set(store.latest(delegatee))
