"""Argument descriptors and the two-phase command-line parser.

Parsing happens twice per invocation:

1. a routing pass with no type hints, which only has to separate positional
   tokens (candidate subflow names) from flags;
2. a typed pass over the leaf workflow's descriptors, fed by `rebuild_argv`
   which re-serialises whatever the routing pass did not consume.
"""

from __future__ import annotations

import logging
import re
from argparse import Namespace
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

ArgValue = str | bool | int | float

END_OF_OPTIONS = "--"

# Namespace attribute holding positional data.
POSITIONALS = "_"


class ArgKind(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"


class ArgumentValueError(ValueError):
    """A flag was bound to a value its descriptor cannot accept."""

    def __init__(self, key: str, value: object, kind: ArgKind) -> None:
        super().__init__(f"Invalid value for --{key}: expected a {kind.value}, got {value!r}")
        self.key = key
        self.value = value
        self.kind = kind


def _matches_kind(value: object, kind: ArgKind) -> bool:
    if kind is ArgKind.BOOLEAN:
        return isinstance(value, bool)
    if kind is ArgKind.NUMBER:
        return isinstance(value, int | float) and not isinstance(value, bool)
    return isinstance(value, str)


class ArgSpec(BaseModel):
    """Declarative description of one named flag."""

    kind: ArgKind = Field(description="Primitive type the value is coerced to")
    alias: str | None = Field(default=None, description="Single-character shorthand")
    description: str = Field(default="", description="Help text")
    default: str | bool | int | float | None = Field(
        default=None,
        description="Value used when the flag is omitted",
    )
    required: bool = Field(default=False, description="Whether the flag must be supplied")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _check_invariants(self) -> ArgSpec:
        if self.alias is not None and len(self.alias) != 1:
            raise ValueError(f"alias must be a single character, got {self.alias!r}")
        if self.required and self.default is not None:
            raise ValueError("a required argument cannot declare a default")
        if self.default is not None and not _matches_kind(self.default, self.kind):
            raise ValueError(
                f"default {self.default!r} does not match kind {self.kind.value!r}"
            )
        return self


@dataclass(slots=True)
class ParsedArgs:
    """Untyped result of one parsing pass."""

    positionals: list[str] = field(default_factory=list)
    options: dict[str, ArgValue] = field(default_factory=dict)
    # Tokens after a bare `--`; never routed, never parsed as flags.
    passthrough: list[str] = field(default_factory=list)


# Plain decimal notation only, no inf or nan.
_NUMBER_RE = re.compile(r"-?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?")


def _is_number(text: str) -> bool:
    return _NUMBER_RE.fullmatch(text) is not None


def _looks_like_flag(token: str) -> bool:
    return token.startswith("-") and len(token) > 1 and not _is_number(token)


def parse_argv(argv: Sequence[str], specs: Mapping[str, ArgSpec] | None = None) -> ParsedArgs:
    """Split an argument vector into positionals and flags.

    Without `specs` every flag is untyped: `--key value` and `--key=value`
    bind strings, a bare `--key` binds True and `--no-key` binds False.
    With `specs`, aliases map onto their canonical key, booleans never swallow
    the following token (except a literal `true`/`false`) and a string or
    number flag given without a value binds the empty string.
    """

    specs = specs or {}
    aliases = {spec.alias: key for key, spec in specs.items() if spec.alias}
    parsed = ParsedArgs()

    def canonical(name: str) -> str:
        return aliases.get(name, name)

    def is_boolean(key: str) -> bool:
        spec = specs.get(key)
        return spec is not None and spec.kind is ArgKind.BOOLEAN

    def is_declared_value(key: str) -> bool:
        spec = specs.get(key)
        return spec is not None and spec.kind is not ArgKind.BOOLEAN

    def assign(key: str, value: str) -> None:
        parsed.options[key] = value != "false" if is_boolean(key) else value

    tokens = list(argv)
    i = 0

    def bare_flag(key: str) -> None:
        # Decide whether `key` takes the next token as its value.
        nonlocal i
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if is_boolean(key):
            if nxt in ("true", "false"):
                parsed.options[key] = nxt == "true"
                i += 1
            else:
                parsed.options[key] = True
        elif nxt is not None and nxt != END_OF_OPTIONS and not _looks_like_flag(nxt):
            parsed.options[key] = nxt
            i += 1
        else:
            parsed.options[key] = "" if is_declared_value(key) else True

    while i < len(tokens):
        token = tokens[i]

        if token == END_OF_OPTIONS:
            parsed.passthrough.extend(tokens[i + 1 :])
            break

        if token.startswith("--") and len(token) > 2:
            body = token[2:]
            if "=" in body:
                name, value = body.split("=", 1)
                assign(canonical(name), value)
            elif body.startswith("no-") and len(body) > 3:
                parsed.options[canonical(body[3:])] = False
            else:
                bare_flag(canonical(body))
        elif _looks_like_flag(token):
            letters = token[1:]
            for j, letter in enumerate(letters):
                key = canonical(letter)
                rest = letters[j + 1 :]
                if rest.startswith("="):
                    assign(key, rest[1:])
                    break
                if rest and (_is_number(rest) or not letter.isalpha()):
                    assign(key, rest)
                    break
                if rest:
                    parsed.options[key] = "" if is_declared_value(key) else True
                    continue
                bare_flag(key)
        else:
            parsed.positionals.append(token)
        i += 1

    return parsed


def rebuild_argv(
    positionals: Sequence[str],
    parsed: ParsedArgs,
    *,
    exclude: Iterable[str] = (),
) -> list[str]:
    """Re-serialise a routing pass for the typed pass.

    Positionals come first so that a bare boolean flag can never swallow one.
    """

    skipped = set(exclude)
    argv = list(positionals)
    for key, value in parsed.options.items():
        if key in skipped:
            continue
        if value is True:
            argv.append(f"--{key}")
        elif value is False:
            argv.append(f"--no-{key}")
        else:
            argv.append(f"--{key}={value}")
    if parsed.passthrough:
        argv.append(END_OF_OPTIONS)
        argv.extend(parsed.passthrough)
    return argv


def _to_number(key: str, value: ArgValue) -> int | float:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            pass
    raise ArgumentValueError(key, value, ArgKind.NUMBER)


def _coerce(key: str, spec: ArgSpec, value: ArgValue) -> ArgValue:
    if spec.kind is ArgKind.BOOLEAN:
        if isinstance(value, str):
            return value != "false"
        return bool(value)
    if spec.kind is ArgKind.NUMBER:
        return _to_number(key, value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def dest(key: str) -> str:
    """Attribute name for a flag, as argparse would derive it (`dry-run` -> `dry_run`)."""

    return key.replace("-", "_")


def bind_args(parsed: ParsedArgs, specs: Mapping[str, ArgSpec]) -> Namespace:
    """Turn a typed parsing pass into the handler's argument object.

    Declared keys are coerced to their kind and always present (bound value,
    default, False for optional booleans, otherwise None). Unknown keys are
    passed through as parsed, except ones that would replace `_`.
    """

    values: dict[str, object] = {POSITIONALS: [*parsed.positionals, *parsed.passthrough]}
    for key, value in parsed.options.items():
        if dest(key) == POSITIONALS:
            logger.debug("Ignoring flag that shadows positionals", extra={"flag": key})
            continue
        spec = specs.get(key)
        values[dest(key)] = value if spec is None else _coerce(key, spec, value)

    for key, spec in specs.items():
        if key in parsed.options:
            continue
        if spec.default is not None:
            values[dest(key)] = spec.default
        elif spec.kind is ArgKind.BOOLEAN and not spec.required:
            values[dest(key)] = False
        else:
            values[dest(key)] = None

    return Namespace(**values)


def find_missing_required(specs: Mapping[str, ArgSpec], args: Namespace) -> str | None:
    """Return the first required key without a bound value, if any."""

    for key, spec in specs.items():
        if spec.required and getattr(args, dest(key), None) is None:
            return key
    return None
