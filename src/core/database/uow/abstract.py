from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, Protocol, TypeVar


class RepositoryProtocol(Protocol):
    """Protocol defining the structure of a repository class."""

    model: ClassVar[Any]


R = TypeVar("R", bound=RepositoryProtocol)


class UnitOfWork(ABC, Generic[R]):
    """
    Transaction boundary shared by the repositories of one business operation.

    Generics:
        R: Repository type bound to RepositoryProtocol, to enable type hinting for repositories
    """

    @abstractmethod
    async def __aenter__(self) -> "UnitOfWork[R]":
        """Open a transaction."""

    @abstractmethod
    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the transaction, rolling back if the block raised before completing."""

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...

    @abstractmethod
    async def flush(self) -> None:
        """Push pending writes so constraint violations surface inside the block."""

    @property
    @abstractmethod
    def completed(self) -> bool:
        """Whether the current block has already been committed or rolled back."""
