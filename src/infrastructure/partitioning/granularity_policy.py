"""Granularity policy interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from src.domain.exceptions import FormatError
from src.domain.models import Granularity


@dataclass(frozen=True)
class KeyMatch:
    """Outcome of matching a partition name against the key convention."""

    matched: bool
    key: Optional[str] = None

    @classmethod
    def ignored(cls) -> "KeyMatch":
        return cls(matched=False)


class GranularityPolicy(ABC):
    """Key derivation, display and source filtering for one granularity.

    Keys are fixed-width digit strings (yyyy, yyyymm or yyyymmdd), so lexical
    and numeric ordering agree.
    """

    granularity: Granularity
    # Divides a yyyymmdd source column value down to this granularity's key.
    column_divisor: int = 1

    @property
    def key_width(self) -> int:
        return self.granularity.key_width

    @abstractmethod
    def step_back(self, anchor: date, periods: int) -> date:
        """Return the date ``periods`` calendar steps before ``anchor``."""
        raise NotImplementedError

    @abstractmethod
    def format_key(self, value: date) -> str:
        """Return the partition key of the period containing ``value``."""
        raise NotImplementedError

    def generate_period_sequence(self, max_date: date, count: int) -> List[str]:
        """Generate the ascending keys of a window ending at ``max_date``.

        Args:
            max_date: Inclusive anchor date of the window.
            count: Number of periods in the window.

        Returns:
            Exactly ``count`` keys, oldest first.

        Raises:
            FormatError: If a generated key does not have the canonical width.
        """
        keys = []
        for periods_back in range(count - 1, -1, -1):
            key = self.format_key(self.step_back(max_date, periods_back))
            if len(key) != self.key_width:
                raise FormatError(
                    f"Generated partition key {key} does not match "
                    f"{self.granularity.name.capitalize()} granularity "
                    f"({self.key_width} digits)."
                )
            keys.append(key)
        return keys

    def format_for_display(self, key: str) -> str:
        """Split a key into a dashed date string (e.g. "2024-01-15").

        Only the width is checked; "20241399" formats as "2024-13-99".

        Raises:
            FormatError: If the key length does not match the granularity.
        """
        if len(key) != self.key_width:
            raise FormatError(
                f"Failed to derive date from partition key. Check the key {key} "
                f"matches {self.granularity.name.capitalize()} granularity."
            )
        segments = [key[0:4]]
        if self.key_width >= 6:
            segments.append(key[4:6])
        if self.key_width >= 8:
            segments.append(key[6:8])
        return "-".join(segments)

    def build_source_predicate(self, column: str, key: str) -> str:
        """Build the filter selecting the rows of one partition."""
        if self.column_divisor == 1:
            return f"{column} = {key}"
        return f"FLOOR({column} / {self.column_divisor}) = {key}"

    def build_source_query(self, table: str, column: str, key: str) -> str:
        """Build the source query of one partition."""
        predicate = self.build_source_predicate(column, key)
        return f"SELECT * FROM {table} WHERE {predicate} ORDER BY {column}"

    def parse_partition_key(self, name: str) -> KeyMatch:
        """Match a partition name against the key convention of this granularity.

        Names of another width, or that are not integers, are ignored.
        """
        if len(name) != self.key_width:
            return KeyMatch.ignored()
        try:
            int(name)
        except ValueError:
            return KeyMatch.ignored()
        return KeyMatch(matched=True, key=name)


def build_empty_source_query(table: str) -> str:
    """Build a source query that never returns rows."""
    return f"SELECT * FROM {table} WHERE 0=1"
