"""Resolution of proposed comments to catalogued declarations.

Each proposal is resolved as an explicit multi-candidate step: the candidates
sharing its name and kind are collected and ranked by how many parameters of
the signature hint they match, with ties going to the earliest declaration.
When the winner already carries a doc comment the proposal is reported as
already documented; it never falls through to a lower-ranked sibling.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from docsplice.models import (
    DeclarationKey,
    DeclarationKind,
    DeclarationRecord,
    MatchOutcome,
    ProposedComment,
    ResolvedComment,
    UnresolvedProposal,
    UnresolvedReason,
)

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Outcome of matching one file's proposal batch against its catalog."""
    resolved: list[ResolvedComment] = field(default_factory=list)
    unresolved: list[UnresolvedProposal] = field(default_factory=list)
    skipped_documented: list[DeclarationKey] = field(default_factory=list)


def _normalize_type(type_text: str | None) -> str | None:
    if type_text is None:
        return None
    return "".join(type_text.split())


def _parse_hint_entry(entry: str) -> tuple[str, str | None]:
    """Split a signature hint entry "name?: type" into name and type."""
    name, _, type_text = entry.partition(":")
    name = name.strip().lstrip(".").rstrip("?").strip()
    return name, _normalize_type(type_text) if type_text.strip() else None


def signature_hint(proposal: ProposedComment) -> list[tuple[str, str | None]]:
    """Return the proposal's parameter hint as (name, type) pairs.

    Falls back to the documented parameter names when no explicit signature
    hint was supplied.
    """
    if proposal.signature is not None:
        entries = [_parse_hint_entry(entry) for entry in proposal.signature]
    else:
        entries = [(name.strip(), None) for name, _ in proposal.params]
    return [(name, type_text) for name, type_text in entries if name]


def score_candidate(record: DeclarationRecord, hint: list[tuple[str, str | None]]) -> int:
    """Count hint parameters that match the candidate's parameters.

    A hint parameter matches when the names are equal and, if the hint gives a
    type, the type texts are equal ignoring whitespace.

    Args:
        record: Candidate declaration
        hint: (name, type) pairs from signature_hint

    Returns:
        Number of matching parameters
    """
    declared = {param.name: _normalize_type(param.type) for param in record.parameters}
    score = 0
    for name, type_text in hint:
        if name not in declared:
            continue
        if type_text is not None and declared[name] != type_text:
            continue
        score += 1
    return score


def _scope_matches(record: DeclarationRecord, scope: tuple[str, ...]) -> bool:
    if not scope:
        return True
    return record.scope[-len(scope):] == scope


def find_candidates(
    catalog: Sequence[DeclarationRecord],
    proposal: ProposedComment,
    kind: DeclarationKind,
) -> list[DeclarationRecord]:
    """Catalog entries with the proposal's name, kind and scope, in source order."""
    return [
        record for record in catalog
        if record.name == proposal.name
        and record.kind is kind
        and _scope_matches(record, proposal.scope)
    ]


def match(catalog: Sequence[DeclarationRecord], proposals: Sequence[ProposedComment]) -> MatchResult:
    """Resolve each proposal to at most one undocumented declaration.

    Args:
        catalog: Records from the indexer, in source order
        proposals: The file's proposal batch, in arrival order

    Returns:
        MatchResult with resolved comments in declaration order, unresolved
        proposals in arrival order and the keys of documented declarations
        that proposals targeted
    """
    result = MatchResult()
    # Declaration -> (ResolvedComment, arrival position)
    claims: dict[DeclarationRecord, tuple[ResolvedComment, int]] = {}
    superseded: list[tuple[int, UnresolvedProposal]] = []
    unresolved: list[tuple[int, UnresolvedProposal]] = []

    for position, proposal in enumerate(proposals):
        try:
            kind = DeclarationKind.parse(proposal.kind)
        except ValueError as e:
            logger.debug(f"Proposal {proposal.target} has an unknown kind: {e}")
            unresolved.append((position, UnresolvedProposal(proposal, UnresolvedReason.UNKNOWN_KIND, str(e))))
            continue

        candidates = find_candidates(catalog, proposal, kind)

        if not candidates:
            logger.debug(f"No declaration found for {proposal.target}")
            unresolved.append((position, UnresolvedProposal(
                proposal, UnresolvedReason.NOT_FOUND, "no declaration with this name and kind"
            )))
            continue

        hint = signature_hint(proposal)
        if len(candidates) == 1:
            chosen = candidates[0]
            outcome = MatchOutcome.UNIQUE
            score = score_candidate(chosen, hint)
        else:
            # max() keeps the first of equal scores, i.e. the earliest declaration
            chosen = max(candidates, key=lambda record: score_candidate(record, hint))
            outcome = MatchOutcome.AMBIGUOUS_RESOLVED
            score = score_candidate(chosen, hint)
            logger.debug(
                f"Resolved {proposal.target} among {len(candidates)} candidates "
                f"to line {chosen.line + 1} (score {score})"
            )

        # Documented declarations are ranked too; a documented winner is never spliced
        if chosen.has_doc_comment:
            if chosen.key not in result.skipped_documented:
                result.skipped_documented.append(chosen.key)
            logger.debug(f"{proposal.target} resolves to documented line {chosen.line + 1}; keeping it")
            unresolved.append((position, UnresolvedProposal(
                proposal, UnresolvedReason.ALREADY_DOCUMENTED, "existing documentation is kept"
            )))
            continue

        resolved = ResolvedComment(proposal=proposal, declaration=chosen, outcome=outcome, score=score)
        previous = claims.get(chosen)
        if previous is None:
            claims[chosen] = (resolved, position)
            continue

        previous_resolved, previous_position = previous
        if score > previous_resolved.score:
            claims[chosen] = (resolved, position)
            loser, loser_position = previous_resolved.proposal, previous_position
        else:
            loser, loser_position = proposal, position
        superseded.append((loser_position, UnresolvedProposal(
            loser, UnresolvedReason.SUPERSEDED,
            f"another proposal matched {chosen.qualified_name} at line {chosen.line + 1} better",
        )))

    result.resolved = [claims[record][0] for record in sorted(claims, key=lambda record: record.offset)]
    result.unresolved = [item for _, item in sorted(unresolved + superseded, key=lambda pair: pair[0])]
    return result
