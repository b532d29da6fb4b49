import math
from dataclasses import dataclass
from typing import Any, Callable, List


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class Pagination:
    """Page request with guardrails: page >= 1, 1 <= size <= MAX_PAGE_SIZE."""

    def __init__(self, page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE):
        self.page_number = 1 if page_number is None or page_number < 1 else page_number
        if page_size is None:
            page_size = DEFAULT_PAGE_SIZE
        self.page_size = 1 if page_size < 1 else min(page_size, MAX_PAGE_SIZE)

    @property
    def skip(self) -> int:
        return (self.page_number - 1) * self.page_size

    @property
    def take(self) -> int:
        return self.page_size

    def next_page(self) -> "Pagination":
        return Pagination(self.page_number + 1, self.page_size)

    @classmethod
    def from_request(cls, args) -> "Pagination":
        return cls(
            args.get('pageNumber', 1, type=int),
            args.get('pageSize', DEFAULT_PAGE_SIZE, type=int),
        )

    def apply(self, query) -> "PagedResult":
        """Run a SQLAlchemy query for this page."""
        total_count = query.order_by(None).count()
        items = query.offset(self.skip).limit(self.take).all()
        return PagedResult(items, self.page_number, self.page_size, total_count)


@dataclass
class PagedResult:
    items: List[Any]
    page_number: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1

    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages

    def to_dict(self, serializer: Callable[[Any], dict]) -> dict:
        return {
            'data': [serializer(item) for item in self.items],
            'pagination': {
                'pageNumber': self.page_number,
                'pageSize': self.page_size,
                'totalCount': self.total_count,
                'totalPages': self.total_pages,
                'hasPreviousPage': self.has_previous_page,
                'hasNextPage': self.has_next_page,
            }
        }
