"""Invalidation of cached read paths after record writes.

Pages that render a record (dashboard listing, view and edit pages, the public
verification page) may be cached by a front end. After every committed write
the registry tells a ``Revalidator`` which paths are stale. A failing
revalidator never fails the write: the data is already committed, so the
failure is only logged.
"""

from typing import Final, Protocol

from loguru import logger

from taxregistry.core.config import RegistryConfig

RECORDS_LIST_PATH: Final[str] = "/dashboard/records"
RECORD_VIEW_PATH: Final[str] = "/dashboard/records/view/{record_id}"
RECORD_EDIT_PATH: Final[str] = "/dashboard/records/edit/{record_id}"


class Revalidator(Protocol):
    def revalidate(self, paths: list[str]) -> None: ...


class LoggingRevalidator:
    """Revalidator that only records which paths went stale."""

    def revalidate(self, paths: list[str]) -> None:
        logger.debug("Revalidating {} cached paths", len(paths), paths=paths)


def dependent_paths(record_id: int, config: RegistryConfig) -> list[str]:
    """Read paths derived from one record.

    The verification page follows ``config.verification_path_template`` so it
    matches the links printed on certificates.
    """
    return [
        RECORDS_LIST_PATH,
        RECORD_VIEW_PATH.format(record_id=record_id),
        RECORD_EDIT_PATH.format(record_id=record_id),
        config.verification_path_template.format(record_id=record_id),
    ]


def invalidate(
    revalidator: Revalidator, record_id: int, config: RegistryConfig
) -> None:
    """Invalidate every path derived from ``record_id``, logging failures."""
    paths = dependent_paths(record_id, config)
    try:
        revalidator.revalidate(paths)
    except Exception as e:  # noqa: BLE001 - write already committed
        logger.opt(exception=e).warning(
            "Cache revalidation failed: {}",
            type(e).__name__,
            record_id=record_id,
            paths=paths,
        )
