from typing import Iterable


class MigrationError(Exception):
    """Base error for everything that stops the schema bootstrap."""


class DatabaseUnreachable(MigrationError):
    """The configured database could not be reached."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        super().__init__(f"Unable to connect to database `{database_url}`")


class SchemaDrift(MigrationError):
    """Recorded migration history matches no known lineage."""

    def __init__(self, current: Iterable[str], expected: Iterable[str]) -> None:
        self.current = tuple(sorted(current))
        self.expected = tuple(sorted(expected))
        super().__init__(
            f"Database migration history {list(self.current)} "
            f"does not match the expected lineage {list(self.expected)}"
        )


class MigrationApplyFailure(MigrationError):
    """A pending migration failed while being applied."""


class AggregationQueryFailure(Exception):
    """One of the usage report queries failed; no report is produced."""
