"""Factory for artwork store backends."""

from nfc_router.artworks.store import ArtworkStore, JSONArtworkStore
from nfc_router.config.settings import Settings


def build_artwork_store(settings: Settings) -> ArtworkStore:
    backend = settings.artwork_store_backend

    if backend == "json":
        # A missing file is an empty catalogue, not a startup failure
        return JSONArtworkStore(settings.artwork_data_path)

    if backend == "dynamodb":
        # Lazy import to avoid boto3 dependency when not needed
        from nfc_router.artworks.dynamodb_store import DynamoDBArtworkStore
        return DynamoDBArtworkStore(
            table_name=settings.artwork_table_name,
            region=settings.aws_region,
        )

    raise ValueError(f"Unknown artwork store backend: {backend}")
