"""Per-file comment splicing pipeline.

index -> match -> render -> plan -> apply runs strictly in sequence for one
file. Files are independent units: a failure is reported in that file's
FileResult and never stops the others.
"""

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from docsplice.config import SpliceConfig
from docsplice.errors import ParseError, RenderError, WriteError
from docsplice.matcher import match
from docsplice.models import (
    FileResult,
    FileStatus,
    ProposedComment,
    RenderedComment,
    UnresolvedProposal,
    UnresolvedReason,
)
from docsplice.parsers import get_parser_for_file
from docsplice.parsers.base import BaseParser
from docsplice.parsers.typescript_parser import TypeScriptParser
from docsplice.planner import plan
from docsplice.proposals import CommentProposer
from docsplice.renderer import CommentRenderer
from docsplice.writer import apply, read_source, write_file

logger = logging.getLogger(__name__)


def process_source(
    source_code: str,
    proposals: Sequence[ProposedComment],
    path: str = "<source>",
    parser: BaseParser | None = None,
    config: SpliceConfig | None = None,
) -> FileResult:
    """Run the pipeline on one file's text without touching the filesystem.

    Args:
        source_code: Complete file text
        proposals: The file's proposal batch
        path: Name used in the result
        parser: Indexer to use (TypeScript grammar if None)
        config: Render settings (defaults if None)

    Returns:
        FileResult with status UPDATED, UNCHANGED or PARSE_ERROR
    """
    parser = parser or TypeScriptParser()
    config = config or SpliceConfig()

    try:
        catalog = parser.index(source_code)
    except ParseError as e:
        logger.warning(f"Skipping {path}: {e}")
        return FileResult(
            path=path,
            status=FileStatus.PARSE_ERROR,
            source=source_code,
            unresolved=[
                UnresolvedProposal(proposal, UnresolvedReason.NOT_FOUND, "file could not be parsed")
                for proposal in proposals
            ],
            error=str(e),
        )

    matched = match(catalog, proposals)
    unresolved = list(matched.unresolved)

    renderer = CommentRenderer(wrap_width=config.wrap_width, strict_returns=config.strict_returns)
    rendered = []
    for resolved in matched.resolved:
        try:
            rendered.append(RenderedComment(resolved=resolved, text=renderer.render(resolved)))
        except RenderError as e:
            logger.warning(f"Rejected comment for {resolved.declaration.qualified_name} in {path}: {e}")
            unresolved.append(UnresolvedProposal(resolved.proposal, UnresolvedReason.RENDER_REJECTED, str(e)))

    operations = plan(rendered, catalog, source_code)
    new_source = apply(source_code, operations)

    return FileResult(
        path=path,
        status=FileStatus.UPDATED if operations else FileStatus.UNCHANGED,
        source=source_code,
        new_source=new_source,
        resolved=[comment.declaration.key for comment in rendered],
        unresolved=unresolved,
        skipped_documented=matched.skipped_documented,
    )


def process_file(
    file_path: Path,
    proposals: Sequence[ProposedComment],
    config: SpliceConfig | None = None,
    write: bool = True,
) -> FileResult:
    """Run the pipeline on a file and write it back when it changed.

    The new text is computed in full before a single atomic write, so a
    failure never leaves a partially spliced file.

    Args:
        file_path: TypeScript file to update
        proposals: The file's proposal batch
        config: Render settings (defaults if None)
        write: If False, compute the result without persisting it

    Returns:
        FileResult; read, parse and write failures are reported, not raised
    """
    file_path = Path(file_path)
    path = file_path.as_posix()

    try:
        source_code = read_source(file_path)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read {path}: {e}")
        return FileResult(path=path, status=FileStatus.READ_ERROR, error=str(e))

    parser = get_parser_for_file(file_path) or TypeScriptParser()
    result = process_source(source_code, proposals, path=path, parser=parser, config=config)

    if write and result.changed:
        try:
            write_file(file_path, result.new_source)
        except WriteError as e:
            result.status = FileStatus.WRITE_ERROR
            result.error = str(e)

    return result


def annotate_file(
    file_path: Path,
    proposer: CommentProposer,
    config: SpliceConfig | None = None,
    write: bool = True,
) -> FileResult:
    """Ask a proposer for a file's batch, then run the pipeline on it.

    The proposer runs to completion before indexing starts.
    """
    file_path = Path(file_path)
    try:
        source_code = read_source(file_path)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read {file_path.as_posix()}: {e}")
        return FileResult(path=file_path.as_posix(), status=FileStatus.READ_ERROR, error=str(e))

    proposals = proposer.propose(source_code, file_path.as_posix())
    return process_file(file_path, proposals, config=config, write=write)


def process_files(
    jobs: Mapping[Path, Sequence[ProposedComment]],
    config: SpliceConfig | None = None,
    write: bool = True,
    max_workers: int | None = None,
) -> list[FileResult]:
    """Process many files in parallel, one independent unit per file.

    Args:
        jobs: Mapping of file path to its proposal batch
        config: Settings shared by all units (defaults if None)
        write: If False, no file is written
        max_workers: Concurrency bound (config.max_workers if None)

    Returns:
        One FileResult per job, in job order
    """
    config = config or SpliceConfig()
    workers = max(1, max_workers or config.max_workers)
    items = list(jobs.items())
    if not items:
        return []

    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as executor:
        futures = [
            executor.submit(process_file, Path(file_path), proposals, config, write)
            for file_path, proposals in items
        ]
        results = []
        for (file_path, _), future in zip(items, futures):
            try:
                results.append(future.result())
            except Exception as e:
                # A defect in one unit must not take down the others
                logger.error(f"Unexpected failure processing {file_path}: {e}")
                results.append(FileResult(
                    path=Path(file_path).as_posix(),
                    status=FileStatus.INTERNAL_ERROR,
                    error=f"unexpected error: {e}",
                ))

    updated = sum(1 for result in results if result.status is FileStatus.UPDATED)
    failed = sum(1 for result in results if result.failed)
    logger.info(f"Processed {len(results)} files: {updated} updated, {failed} failed")
    return results
