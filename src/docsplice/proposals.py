"""Sources of proposed comments.

The generation stage is an external oracle: anything that turns a file's text
into a batch of ProposedComment objects. The pipeline only sees the
CommentProposer interface.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path

import yaml

from docsplice.models import ProposedComment


class CommentProposer(ABC):
    """Produces the proposal batch for one file."""

    @abstractmethod
    def propose(self, source_code: str, file_path: str) -> list[ProposedComment]:
        """Return proposals for the given file.

        Args:
            source_code: Complete text of the file
            file_path: Path of the file, as given by the caller

        Returns:
            Proposals in arrival order (may be empty)
        """
        pass


class StaticProposer(CommentProposer):
    """Serves proposals that were generated ahead of time, keyed by file path."""

    def __init__(self, batches: Mapping[str, Sequence[ProposedComment]]):
        self.batches = {Path(path).as_posix(): list(batch) for path, batch in batches.items()}

    def propose(self, source_code: str, file_path: str) -> list[ProposedComment]:
        return list(self.batches.get(Path(file_path).as_posix(), []))


def parse_batch(data) -> list[ProposedComment]:
    """Build proposals from a decoded list of mappings."""
    if not isinstance(data, list):
        raise ValueError("A proposal batch must be a list")
    return [ProposedComment.from_dict(entry) for entry in data]


def load_proposals(path: Path, default_file: str | None = None) -> dict[str, list[ProposedComment]]:
    """Load proposal batches from a JSON or YAML file.

    The file holds either a mapping of source path to proposal list, or a bare
    list of proposals for a single file (which then needs default_file).

    Args:
        path: .json, .yaml or .yml file
        default_file: Source path for a bare list

    Returns:
        Mapping of source path (POSIX form) to proposals

    Raises:
        ValueError: If the content has the wrong shape
        OSError: If the file cannot be read
    """
    text = Path(path).read_text(encoding="utf-8")
    if Path(path).suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)

    if isinstance(data, list):
        if default_file is None:
            raise ValueError("Proposal file holds a bare list; a single target file is required")
        return {Path(default_file).as_posix(): parse_batch(data)}

    if not isinstance(data, dict):
        raise ValueError("Proposal file must contain a list or a mapping of file path to list")

    return {Path(file_path).as_posix(): parse_batch(batch) for file_path, batch in data.items()}
