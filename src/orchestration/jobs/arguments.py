"""Command-line argument layout shared by sweep submission and result collection.

The submitted trial command is a flat list of alternating flag/value tokens.
:class:`ArgumentLayout` owns the order of those flags, builds the tokens at
submission time and decodes them back into named columns after the sweep.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from infrastructure.config.loader import (
    DECODE_NAMED,
    DECODE_POSITIONAL,
    ArgumentsConfig,
)
from orchestration.jobs.errors import ParseError


def search_space_reference(name: str) -> str:
    """Return the Azure ML binding expression for a search-space dimension."""
    return f"${{{{search_space.{name}}}}}"


@dataclass(frozen=True)
class ArgumentLayout:
    """Ordered ``(column, flag)`` pairs plus tokens that precede the first flag."""

    columns: Tuple[Tuple[str, str], ...]
    leading_tokens: int = 0

    @classmethod
    def from_config(cls, arguments_config: ArgumentsConfig) -> "ArgumentLayout":
        return cls(
            columns=tuple(arguments_config.layout),
            leading_tokens=arguments_config.leading_tokens,
        )

    @property
    def column_names(self) -> List[str]:
        return [column for column, _ in self.columns]

    @property
    def flags_to_columns(self) -> Dict[str, str]:
        return {flag: column for column, flag in self.columns}

    def offset_for(self, column: str) -> int:
        """Index of ``column``'s value token in a full argument sequence."""
        for index, (name, _) in enumerate(self.columns):
            if name == column:
                return self.leading_tokens + 2 * index + 1
        raise KeyError(f"Column '{column}' is not part of the argument layout")


def build_command_arguments(
    layout: ArgumentLayout,
    static_arguments: Mapping[str, str],
    search_space_names: Iterable[str],
) -> List[str]:
    """
    Build the trial's flag/value tokens in layout order.

    Args:
        layout: Argument layout.
        static_arguments: Fixed values per column (e.g. input file paths).
        search_space_names: Columns sampled by the sweep; these are bound with
            ``${{search_space.<name>}}``.

    Returns:
        Flat token list ``[flag, value, flag, value, ...]``.

    Raises:
        ValueError: If a layout column has no value source, or has two.
    """
    sampled = set(search_space_names)
    overlap = sampled & set(static_arguments)
    if overlap:
        raise ValueError(f"Columns {sorted(overlap)} are both static and sampled")

    tokens: List[str] = []
    for column, flag in layout.columns:
        if column in static_arguments:
            value = str(static_arguments[column])
        elif column in sampled:
            value = search_space_reference(column)
        else:
            raise ValueError(f"No static value or search space entry for column '{column}'")
        tokens.extend([flag, value])
    return tokens


def decode_positional(tokens: Sequence[str], layout: ArgumentLayout) -> Dict[str, str]:
    """
    Decode named parameters by their fixed offset in the token sequence.

    The flag token just before each offset must match the layout, so a
    reordered submission fails loudly instead of mislabelling columns.

    Raises:
        ParseError: If the sequence is too short or a flag is out of place.
    """
    decoded: Dict[str, str] = {}
    for column, flag in layout.columns:
        offset = layout.offset_for(column)
        if offset >= len(tokens):
            raise ParseError(
                f"Argument sequence has {len(tokens)} tokens; "
                f"'{column}' expected at offset {offset}"
            )
        if tokens[offset - 1] != flag:
            raise ParseError(
                f"Expected flag '{flag}' at offset {offset - 1}, found '{tokens[offset - 1]}'"
            )
        decoded[column] = tokens[offset]
    return decoded


def decode_named(tokens: Sequence[str], layout: ArgumentLayout) -> Dict[str, Optional[str]]:
    """
    Decode named parameters by walking ``--flag value`` pairs.

    ``--flag=value`` is accepted as well. Unknown flags are ignored and
    layout columns that never appear decode to ``None``.

    Raises:
        ParseError: If a known flag is the last token and has no value.
    """
    lookup = layout.flags_to_columns
    decoded: Dict[str, Optional[str]] = {column: None for column in layout.column_names}

    index = 0
    while index < len(tokens):
        token = tokens[index]
        if "=" in token and token.split("=", 1)[0] in lookup:
            flag, value = token.split("=", 1)
            decoded[lookup[flag]] = value
        elif token in lookup:
            if index + 1 >= len(tokens):
                raise ParseError(f"Flag '{token}' has no value")
            decoded[lookup[token]] = tokens[index + 1]
            index += 1
        index += 1
    return decoded


def decode_arguments(
    tokens: Sequence[str],
    layout: ArgumentLayout,
    mode: str = DECODE_NAMED,
) -> Dict[str, Optional[str]]:
    """Decode ``tokens`` with the configured strategy."""
    if mode == DECODE_POSITIONAL:
        return dict(decode_positional(tokens, layout))
    if mode == DECODE_NAMED:
        return decode_named(tokens, layout)
    raise ValueError(f"Unknown decode mode: {mode}")
