"""Ref classification into deletion candidates."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

UNMERGED_PREFIX = "(!) "


class RefKind(Enum):
    """Kind of local ref."""

    BRANCH = "branch"
    TAG = "tag"


class TrackingState(Enum):
    """Remote tracking state of a branch."""

    ACTIVE = "active"
    GONE = "gone"
    NONE = "none"


class Category(Enum):
    """Classification of a ref."""

    PROTECTED = "protected"
    SAFE = "safe_to_delete"
    LOCAL_ONLY = "local_only"
    UNMERGED = "unmerged"
    STALE_TAG = "stale_tag"


class DeleteMethod(Enum):
    """How a candidate gets deleted."""

    MERGED = "merged"
    GONE_REMOTE = "gone_remote"
    FORCE = "force"
    STALE_TAG = "stale_tag"
    NONE = ""  # Used for protected branches


class RiskTier(Enum):
    """Confirmation tier of a candidate."""

    SAFE = "safe"
    DANGEROUS = "dangerous"


class ConfigurationError(Exception):
    """Invalid combination of options."""


class IncompatibleFlags(ConfigurationError):
    """Options that cannot be used together."""


class IncompatibleSelectionMode(IncompatibleFlags):
    """Both select-all and interactive selection were requested."""


@dataclass(frozen=True)
class RepositoryContext:
    """Repository facts resolved once per run."""

    default_branch: str
    current_branch: str
    has_remote: bool
    remote_name: str = "origin"
    path: str = ""


@dataclass(frozen=True)
class RunConfiguration:
    """Options for a single run."""

    force: bool = False
    select_all: bool = False
    interactive: bool = False
    include_unmerged: bool = False
    include_all_tags: bool = False

    def validate(self) -> None:
        """Reject option combinations before anything is deleted.

        Raises:
            IncompatibleSelectionMode: If select-all and interactive are both set
            IncompatibleFlags: If select-all and force are both set
        """
        if self.select_all and self.interactive:
            raise IncompatibleSelectionMode("Options -a (--all) and -i (--interactive) are incompatible")
        if self.select_all and self.force:
            raise IncompatibleFlags("Options -a (--all) and -f (--force) are incompatible")


@dataclass(frozen=True)
class Upstream:
    """Remote branch a local branch tracks."""

    remote: str
    branch: str

    def __str__(self) -> str:
        return f"{self.remote}/{self.branch}"


@dataclass(frozen=True)
class RawRef:
    """Attributes of a local ref as reported by git."""

    name: str
    kind: RefKind
    is_merged: bool = False
    tracking: TrackingState = TrackingState.NONE
    exists_on_remote: Optional[bool] = None  # None when the remote was not checked
    last_commit: str = "unknown"
    upstream: Optional[Upstream] = None


@dataclass(frozen=True)
class DeletionCandidate:
    """A classified ref."""

    kind: RefKind
    name: str
    category: Category
    method: DeleteMethod
    risk_tier: RiskTier
    reason: str
    remote_state: str
    last_commit: str = "unknown"
    upstream: Optional[Upstream] = None

    @property
    def display_label(self) -> str:
        """Name as shown in selectors, marked when dangerous."""
        if self.risk_tier is RiskTier.DANGEROUS:
            return UNMERGED_PREFIX + self.name
        return self.name

    @property
    def is_deletable(self) -> bool:
        return self.category is not Category.PROTECTED


def _remote_state(tracking: TrackingState) -> str:
    if tracking is TrackingState.GONE:
        return "gone"
    if tracking is TrackingState.ACTIVE:
        return "exists"
    return "local_only"


def _candidate(
    ref: RawRef,
    category: Category,
    method: DeleteMethod,
    reason: str,
    remote_state: Optional[str] = None,
) -> DeletionCandidate:
    risk = RiskTier.DANGEROUS if category is Category.UNMERGED else RiskTier.SAFE
    return DeletionCandidate(
        kind=ref.kind,
        name=ref.name,
        category=category,
        method=method,
        risk_tier=risk,
        reason=reason,
        remote_state=remote_state or _remote_state(ref.tracking),
        last_commit=ref.last_commit,
        upstream=ref.upstream,
    )


def classify_branch(
    ref: RawRef,
    context: RepositoryContext,
    include_unmerged: bool = False,
) -> Optional[DeletionCandidate]:
    """Classify a branch. The first matching rule wins.

    Returns None for an unmerged branch when include_unmerged is False.
    """
    if ref.name == context.default_branch:
        return _candidate(ref, Category.PROTECTED, DeleteMethod.NONE, "Default branch")
    if ref.name == context.current_branch:
        return _candidate(ref, Category.PROTECTED, DeleteMethod.NONE, "Currently checked out")
    if ref.tracking is TrackingState.GONE:
        return _candidate(ref, Category.SAFE, DeleteMethod.GONE_REMOTE, "Remote tracking branch deleted", "gone")
    if ref.is_merged:
        if ref.tracking is TrackingState.NONE:
            return _candidate(
                ref,
                Category.LOCAL_ONLY,
                DeleteMethod.MERGED,
                "Merged but never pushed to remote (local-only)",
            )
        return _candidate(ref, Category.SAFE, DeleteMethod.MERGED, f"Merged into {context.default_branch}")
    if include_unmerged:
        return _candidate(ref, Category.UNMERGED, DeleteMethod.FORCE, "Not merged, requires force delete")
    return None


def classify_tag(ref: RawRef) -> Optional[DeletionCandidate]:
    """Classify a tag.

    A tag that was not compared against the remote is a candidate without
    the stale reasoning.
    """
    if ref.exists_on_remote is None:
        return _candidate(ref, Category.STALE_TAG, DeleteMethod.STALE_TAG, "Local tag", "unchecked")
    if not ref.exists_on_remote:
        return _candidate(ref, Category.STALE_TAG, DeleteMethod.STALE_TAG, "Not found on remote", "local_only")
    return None


def classify(ref: RawRef, context: RepositoryContext, include_unmerged: bool = False) -> Optional[DeletionCandidate]:
    """Map a raw ref to a deletion candidate, or None when it is not one."""
    if ref.kind is RefKind.TAG:
        return classify_tag(ref)
    return classify_branch(ref, context, include_unmerged)


def classify_all(
    refs: Iterable[RawRef],
    context: RepositoryContext,
    config: RunConfiguration,
) -> list[DeletionCandidate]:
    """Classify refs in order, dropping the ones that are not candidates."""
    candidates = []
    for ref in refs:
        candidate = classify(ref, context, config.include_unmerged)
        if candidate is not None:
            candidates.append(candidate)
    return candidates
