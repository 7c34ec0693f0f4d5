from abc import ABC, abstractmethod

from docsplice.models import DeclarationRecord


class BaseParser(ABC):
    """Abstract base class for language-specific declaration indexers."""

    @abstractmethod
    def index(self, source_code: str) -> list[DeclarationRecord]:
        """Catalog all documentable declarations in source code.

        Args:
            source_code: The complete text of one file

        Returns:
            DeclarationRecord objects in ascending offset order

        Raises:
            ParseError: If the source is not syntactically valid
        """
        pass
