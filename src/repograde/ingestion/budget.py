"""Token-budgeted code context assembly.

Files are ranked into four tiers (entry points and core code first,
tests and generated code last), scored, and packed into the prompt
until the token budget runs out. The file that crosses the budget is
truncated to the remaining allowance if it is tier 1 or 2.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from repograde.config import ENTRY_POINT_NAMES, SOURCE_CODE_EXTENSIONS
from repograde.constants import (
    CHARS_PER_TOKEN_ESTIMATE,
    SKIPPED_FILES_LISTED,
    TRUNCATION_MARKER,
    estimate_tokens,
)
from repograde.ingestion.context_map import ProjectContextMap
from repograde.ingestion.snapshot import RepositorySnapshot

logger = logging.getLogger(__name__)

BUDGET_TRUNCATION_MARKER = "\n\n... [TRUNCATED FOR TOKEN BUDGET] ...\n\n"

# Below this many remaining tokens a crossing file is skipped, not truncated
_MIN_TRUNCATION_TOKENS = 500
# Tier-4 files are skipped once this share of the budget is used
_TIER4_BUDGET_SHARE = 0.7

_TIER2_DIR = re.compile(
    r"routes?|controllers?|services?|api|handlers?|endpoints?", re.I
)
_TIER2_NAME = re.compile(r"route|controller|service|api|handler", re.I)
_TIER3_DIR = re.compile(r"utils?|helpers?|lib|common|config|constants?", re.I)
_TIER3_NAME = re.compile(r"util|helper|config|constant", re.I)
_TEST_NAME = re.compile(r"\.test\.|\.spec\.|_test\.|_spec\.|^test_")
_GENERATED_NAME = re.compile(r"\.generated\.|\.g\.|\.min\.")
_IMPORTANT_NAME = re.compile(r"^(main|app|index|server)\.", re.I)
_CONFIG_SUFFIXES = frozenset({".json", ".yaml", ".yml", ".toml", ".ini"})


@dataclass(frozen=True)
class FilePriority:
    path: str
    tier: int  # 1 (highest) – 4
    estimated_tokens: int
    priority: int


@dataclass
class BudgetAllocation:
    """Files chosen for a prompt; ``truncated`` maps path → token allowance."""

    selected: list[str] = field(default_factory=lambda: list[str]())
    truncated: dict[str, int] = field(default_factory=lambda: dict[str, int]())
    skipped: list[str] = field(default_factory=lambda: list[str]())
    total_tokens: int = 0


@dataclass(frozen=True)
class CodeContext:
    """Rendered code context for one stage prompt."""

    text: str
    files: tuple[str, ...]
    truncated: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.files


def determine_tier(path: str, context_map: ProjectContextMap) -> int:
    p = PurePosixPath(path)
    name = p.name
    directory = str(p.parent)

    if path in context_map.entry_points or path in context_map.core_modules:
        return 1
    if name in ENTRY_POINT_NAMES:
        return 1
    if "node_modules" in directory or "vendor" in directory:
        return 4
    if _TEST_NAME.search(name) or _GENERATED_NAME.search(name):
        return 4
    if _TIER2_DIR.search(directory) or _TIER2_NAME.search(name):
        return 2
    if _TIER3_DIR.search(directory) or _TIER3_NAME.search(name):
        return 3
    if p.suffix.lower() in _CONFIG_SUFFIXES:
        return 3
    return 2 if p.suffix.lower() in SOURCE_CODE_EXTENSIONS else 3


def calculate_priority(
    path: str, tier: int, context_map: ProjectContextMap
) -> int:
    priority = (5 - tier) * 250
    if path in context_map.entry_points:
        priority += 500
    if path in context_map.core_modules:
        priority += 300
    if path in context_map.user_code_files:
        priority += 200
    depth = len(PurePosixPath(path).parts)
    priority += max(0, 50 - depth * 10)
    if _IMPORTANT_NAME.match(PurePosixPath(path).name):
        priority += 400
    return priority


def truncate_to_tokens(content: str, max_tokens: int) -> str:
    """Keep the first 60% and last 30% of the allowed characters."""
    max_chars = max_tokens * CHARS_PER_TOKEN_ESTIMATE
    if len(content) <= max_chars:
        return content
    keep_start = int(max_chars * 0.6)
    keep_end = int(max_chars * 0.3)
    tail = content[len(content) - keep_end:] if keep_end else ""
    return content[:keep_start] + BUDGET_TRUNCATION_MARKER + tail


class TokenBudget:
    """Ranks snapshot files and packs them into a token budget."""

    def __init__(self, max_tokens: int) -> None:
        self.max_tokens = max_tokens

    def prioritize(
        self,
        snapshot: RepositorySnapshot,
        context_map: ProjectContextMap,
        paths: list[str] | None = None,
    ) -> list[FilePriority]:
        """Score ``paths`` (default: every file), highest priority first.

        Ties keep snapshot path order.
        """
        wanted = paths if paths is not None else [f.path for f in snapshot.files]
        priorities: list[FilePriority] = []
        for path in wanted:
            source = snapshot.get(path)
            if source is None:
                continue
            tier = determine_tier(path, context_map)
            priorities.append(
                FilePriority(
                    path=path,
                    tier=tier,
                    estimated_tokens=estimate_tokens(source.content),
                    priority=calculate_priority(path, tier, context_map),
                )
            )
        priorities.sort(key=lambda fp: -fp.priority)
        return priorities

    def allocate(self, priorities: list[FilePriority]) -> BudgetAllocation:
        allocation = BudgetAllocation()
        available = self.max_tokens

        for idx, fp in enumerate(priorities):
            if (
                fp.tier == 4
                and allocation.total_tokens > available * _TIER4_BUDGET_SHARE
            ):
                allocation.skipped.append(fp.path)
                continue

            if allocation.total_tokens + fp.estimated_tokens <= available:
                allocation.selected.append(fp.path)
                allocation.total_tokens += fp.estimated_tokens
                continue

            remaining = available - allocation.total_tokens
            if fp.tier <= 2 and remaining > _MIN_TRUNCATION_TOKENS:
                allocation.selected.append(fp.path)
                allocation.truncated[fp.path] = remaining
                allocation.total_tokens += remaining
                allocation.skipped.extend(
                    p.path for p in priorities[idx + 1:]
                )
                break

            allocation.skipped.append(fp.path)

        return allocation


def _clip(content: str, char_limit: int) -> tuple[str, bool]:
    if len(content) <= char_limit:
        return content, False
    return content[:char_limit] + TRUNCATION_MARKER, True


def build_code_context(
    snapshot: RepositorySnapshot,
    context_map: ProjectContextMap,
    budget: TokenBudget,
    *,
    max_files: int,
    entry_point_files: int,
    file_char_limit: int,
) -> CodeContext:
    """Assemble a bounded code context for one stage prompt.

    Up to ``entry_point_files`` entry points come first, then the
    highest-priority user code files, capped at ``max_files`` in total.
    Each file is clipped to ``file_char_limit`` characters and the whole
    set is packed into the token budget.
    """
    ranked = budget.prioritize(snapshot, context_map)
    entry = [
        fp for fp in ranked if fp.path in context_map.entry_points
    ][:entry_point_files]
    chosen_paths = {fp.path for fp in entry}
    rest = [
        fp
        for fp in ranked
        if fp.path not in chosen_paths
        and fp.path in context_map.user_code_files
    ]
    candidates = (entry + rest)[:max_files]

    clipped: dict[str, str] = {}
    clipped_paths: list[str] = []
    sized: list[FilePriority] = []
    for fp in candidates:
        source = snapshot.get(fp.path)
        if source is None:
            continue
        content, was_clipped = _clip(source.content, file_char_limit)
        clipped[fp.path] = content
        if was_clipped:
            clipped_paths.append(fp.path)
        sized.append(
            FilePriority(
                path=fp.path,
                tier=fp.tier,
                estimated_tokens=estimate_tokens(content),
                priority=fp.priority,
            )
        )

    allocation = budget.allocate(sized)
    blocks: list[str] = []
    for path in allocation.selected:
        content = clipped[path]
        if path in allocation.truncated:
            content = truncate_to_tokens(content, allocation.truncated[path])
        blocks.append(f"\n--- File: {path} ---\n{content}")

    if allocation.skipped:
        listed = "\n".join(allocation.skipped[:SKIPPED_FILES_LISTED])
        more = (
            "\n... and more"
            if len(allocation.skipped) > SKIPPED_FILES_LISTED
            else ""
        )
        blocks.append(
            f"\n--- Skipped Files ({len(allocation.skipped)}) ---\n"
            f"{listed}{more}"
        )

    logger.debug(
        "event=code_context files=%d truncated=%d skipped=%d tokens=%d",
        len(allocation.selected),
        len(allocation.truncated) + len(clipped_paths),
        len(allocation.skipped),
        allocation.total_tokens,
    )
    return CodeContext(
        text="\n\n".join(blocks),
        files=tuple(allocation.selected),
        truncated=tuple(
            sorted(set(clipped_paths) | set(allocation.truncated))
        ),
        skipped=tuple(allocation.skipped),
    )
