"""
Library combination search.

Given the requested ISBNs and which directory libraries hold each of them, every
combination of up to five holding libraries is scored by how many requested books
it covers and how many distinct libraries it uses. Enumeration is exhaustive
within that bound, so the ranking never depends on a greedy choice.
"""

from itertools import combinations
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from clients.models import BookInfo, HoldingsLookup, LookupStatus
from .models import BookWithLibraries, LibraryRecord, LibrarySummary, OptimalLibrarySet

MAX_COMBINATION_SIZE = 5
MAX_RESULTS = 5


class HoldingIndex:
    """
    ISBN -> library codes and library code -> ISBNs, restricted to directory libraries.
    """

    def __init__(self):
        self.isbn_to_libraries: Dict[str, Set[int]] = {}
        self.library_to_isbns: Dict[int, Set[str]] = {}
        self.dropped_codes: Set[int] = set()

    @classmethod
    def build(
        cls,
        isbns: Sequence[str],
        lookups: Iterable[HoldingsLookup],
        known_codes: Set[int]
    ) -> 'HoldingIndex':
        """
        Build the index from holdings lookups.

        Codes absent from the directory snapshot are dropped. Failed lookups
        contribute nothing, so that ISBN simply has no known holders.
        """
        index = cls()
        for isbn in isbns:
            index.isbn_to_libraries[isbn] = set()

        for lookup in lookups:
            if lookup.status != LookupStatus.FOUND or lookup.isbn not in index.isbn_to_libraries:
                continue
            for library in lookup.libraries:
                if library.lib_code not in known_codes:
                    index.dropped_codes.add(library.lib_code)
                    continue
                index.isbn_to_libraries[lookup.isbn].add(library.lib_code)
                index.library_to_isbns.setdefault(library.lib_code, set()).add(lookup.isbn)

        return index

    def holds(self, lib_code: int, isbn: str) -> bool:
        return isbn in self.library_to_isbns.get(lib_code, ())

    def books_held_by(self, lib_code: int) -> Set[str]:
        return self.library_to_isbns.get(lib_code, set())


def round_rate(covered: int, requested: int) -> float:
    """Coverage percentage rounded to two decimals (1 of 3 -> 33.33)."""
    return round(covered / requested * 100, 2)


def covered_books(
    combination: Sequence[LibraryRecord],
    requested: Sequence[str],
    index: HoldingIndex
) -> List[str]:
    """Requested ISBNs held by at least one library of the combination, in request order."""
    held: Set[str] = set()
    for library in combination:
        held |= index.books_held_by(library.lib_code)
    return [isbn for isbn in requested if isbn in held]


def score_combination(
    combination: Sequence[LibraryRecord],
    requested: Sequence[str],
    index: HoldingIndex,
    book_info: Mapping[str, BookInfo]
) -> Optional[OptimalLibrarySet]:
    """
    Score one library combination.

    Returns:
        OptimalLibrarySet, or None when the combination covers no requested book
    """
    covered = covered_books(combination, requested, index)
    if not covered:
        return None

    books = []
    for isbn in covered:
        info = book_info.get(isbn) or BookInfo.placeholder(isbn)
        books.append(BookWithLibraries(
            isbn=isbn,
            title=info.title,
            cover=info.cover,
            libraries=[
                LibrarySummary(lib_code=library.lib_code, lib_name=library.lib_name, address=library.address)
                for library in combination
                if index.holds(library.lib_code, isbn)
            ]
        ))

    return OptimalLibrarySet(books=books, coverage_rate=round_rate(len(covered), len(requested)))


def find_optimal_library_sets(
    requested: Sequence[str],
    libraries: Sequence[LibraryRecord],
    index: HoldingIndex,
    book_info: Mapping[str, BookInfo],
    max_size: int = MAX_COMBINATION_SIZE,
    limit: int = MAX_RESULTS
) -> List[OptimalLibrarySet]:
    """
    Rank library combinations for the requested books.

    Every combination is scored first; result models are only built for the
    sets that make the cut.

    Args:
        requested: Distinct requested ISBNs
        libraries: Directory snapshot, in directory order
        index: Holdings restricted to the directory
        book_info: Display metadata per ISBN
        max_size: Largest combination size to enumerate
        limit: Number of sets to return

    Returns:
        Sets ordered by coverage rate descending, then distinct library count ascending
    """
    if not requested:
        return []

    valid_libraries = [library for library in libraries if index.books_held_by(library.lib_code)]

    scored: List[Tuple[float, int, Tuple[LibraryRecord, ...]]] = []
    for size in range(1, min(max_size, len(valid_libraries)) + 1):
        for combination in combinations(valid_libraries, size):
            covered = covered_books(combination, requested, index)
            if not covered:
                continue

            used = {
                library.lib_code for library in combination
                if any(index.holds(library.lib_code, isbn) for isbn in covered)
            }
            scored.append((round_rate(len(covered), len(requested)), len(used), combination))

    # sort is stable: equal keys keep enumeration order
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [
        score_combination(combination, requested, index, book_info)
        for _, _, combination in scored[:limit]
    ]
