"""Factory for rate-limit counter store backends."""

from nfc_router.config.settings import Settings
from nfc_router.counters.store import CounterStore, InMemoryCounterStore


def build_counter_store(settings: Settings) -> CounterStore:
    backend = settings.rate_limit_backend

    if backend == "memory":
        return InMemoryCounterStore()

    if backend == "dynamodb":
        # Lazy import to avoid boto3 dependency when not needed
        from nfc_router.counters.dynamodb_store import DynamoDBCounterStore
        return DynamoDBCounterStore(
            table_name=settings.rate_limit_table_name,
            region=settings.aws_region,
        )

    raise ValueError(f"Unknown rate limit backend: {backend}")
