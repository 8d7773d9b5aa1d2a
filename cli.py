from __future__ import annotations

import logging
import sys
from typing import Callable, List, Optional

from pydantic import ValidationError

from api import build_session
from config import AppConfig, load_config
from enrichment import MetadataLookupChain, StartupReport, build_lookup_chain, run_startup_checks
from inventory import Book, InventoryStore, ReadingStatus, parse_status, status_label
from isbn import normalize_isbn
from progress import days_to_finish, infer_status, percent_complete
from transfer import export_csv, import_csv

MAX_PAGES = 2_000_000_000

InputFn = Callable[[str], str]


# ------------------------------------------------------------------------------
# Prompt helpers
# ------------------------------------------------------------------------------
def ask_int(prompt: str, low: int, high: int, read: InputFn = input) -> int:
    """Prompt until the user enters a whole number in [low, high]."""
    while True:
        try:
            response = read(f"{prompt} ").strip()
        except EOFError:
            return low
        try:
            value = int(response)
        except ValueError:
            print("Invalid number. Try again.")
            continue
        if low <= value <= high:
            return value
        print(f"Enter a number in [{low},{high}].")


def ask_line(prompt: str, allow_empty: bool = False, read: InputFn = input) -> str:
    while True:
        try:
            response = read(f"{prompt} ").strip()
        except EOFError:
            return ""
        if response or allow_empty:
            return response
        print("Please enter something.")


def ask_status(total_pages: int, current_page: int, read: InputFn = input) -> ReadingStatus:
    try:
        response = read("Status [to-read/reading/finished] (Enter for auto): ")
    except EOFError:
        response = ""
    status = parse_status(response)
    if status is None:
        return infer_status(total_pages, current_page)
    return status


# ------------------------------------------------------------------------------
# Rendering
# ------------------------------------------------------------------------------
def truncate(value: str, length: int) -> str:
    if len(value) <= length:
        return value
    return value[: length - 1] + "…"


def format_header() -> str:
    header = (
        f"{'ID':<5}{'Title':<35}{'Author':<22}{'Progress':<13}"
        f"{'% Done':<9}{'ETA':<9}{'Status':<10}{'ISBN':<15}"
    )
    return f"{header}\n{'-' * 118}"


def format_row(book: Book, daily_rate: int) -> str:
    days = days_to_finish(book, daily_rate)
    eta = f"{days} d" if days is not None else "-"
    progress = f"{book.current_page:>6}/{book.total_pages:<6}"
    return (
        f"{book.id:<5}{truncate(book.title, 34):<35}{truncate(book.author, 21):<22}"
        f"{progress:<13}{percent_complete(book):>6.1f}%  {eta:<9}"
        f"{status_label(book.status):<10}{book.isbn or '-':<15}"
    )


def print_books(books: List[Book], daily_rate: int, empty_message: str = "(no books)") -> None:
    if not books:
        print(empty_message)
        return
    print(format_header())
    for book in books:
        print(format_row(book, daily_rate))


# ------------------------------------------------------------------------------
# Flows
# ------------------------------------------------------------------------------
def _report_added(book_id: Optional[int]) -> None:
    if book_id is not None:
        print(f"Added book with ID #{book_id}.")
    else:
        print("Add failed.")


def _ask_pages_and_status(book: Book, read: InputFn) -> None:
    book.total_pages = ask_int("Total pages (>=0):", 0, MAX_PAGES, read)
    book.current_page = ask_int("Current page (>=0):", 0, max(0, book.total_pages), read)
    book.status = ask_status(book.total_pages, book.current_page, read)


def add_manual_flow(store: InventoryStore, read: InputFn = input) -> Optional[int]:
    book = Book(title=ask_line("Title:", read=read))
    book.author = ask_line("Author (optional):", allow_empty=True, read=read)
    _ask_pages_and_status(book, read)
    book.isbn = normalize_isbn(ask_line("ISBN-10/13 (optional):", allow_empty=True, read=read))
    book_id = store.add_book(book)
    _report_added(book_id)
    return book_id


def add_by_isbn_flow(
    store: InventoryStore,
    chain: MetadataLookupChain,
    read: InputFn = input,
) -> Optional[int]:
    isbn13 = normalize_isbn(ask_line("Enter ISBN-10/13:", read=read))
    if not isbn13:
        print("Invalid ISBN.")
        return None

    print("Looking up…")
    book = Book(title="", isbn=isbn13)
    found = chain.lookup(isbn13)
    if found is not None:
        print("Found:")
        print(f"Title:  {found.title or '(unknown)'}")
        print(f"Author: {found.author or '(unknown)'}")
        book.title = found.title
        book.author = found.author
    else:
        print("No metadata found; entering manually.")

    if not book.title:
        book.title = ask_line("Title:", read=read)
    if not book.author:
        book.author = ask_line("Author (optional):", allow_empty=True, read=read)
    _ask_pages_and_status(book, read)

    book_id = store.add_book(book)
    _report_added(book_id)
    return book_id


def update_page_flow(store: InventoryStore, read: InputFn = input) -> None:
    book_id = ask_int("Book ID:", 1, sys.maxsize, read)
    book = store.get_book(book_id)
    if book is None:
        print("Not found.")
        return
    print(f"Current: {book.current_page}/{book.total_pages}")
    page = ask_int("Set current page:", 0, max(0, book.total_pages), read)
    if store.update_progress(book_id, page, infer_status(book.total_pages, page)):
        print("Updated.")
    else:
        print("Update failed.")


def mark_status_flow(store: InventoryStore, read: InputFn = input) -> None:
    book_id = ask_int("Book ID:", 1, sys.maxsize, read)
    if store.get_book(book_id) is None:
        print("Not found.")
        return
    print("Set status: (0) To-Read  (1) Reading  (2) Finished")
    choice = ask_int("Choice:", 0, 2, read)
    if store.set_status(book_id, ReadingStatus(choice)):
        print("Status updated.")
    else:
        print("Update failed.")


def delete_flow(store: InventoryStore, read: InputFn = input) -> None:
    book_id = ask_int("Book ID to delete:", 1, sys.maxsize, read)
    print("Deleted." if store.delete_book(book_id) else "Not found.")


def search_flow(store: InventoryStore, daily_rate: int, read: InputFn = input) -> None:
    term = ask_line("Search title/author substring:", read=read)
    print_books(store.search_books(term), daily_rate, empty_message="No matches.")


def filtered_list_flow(store: InventoryStore, daily_rate: int, read: InputFn = input) -> None:
    print("Filter: (0) All  (1) To-Read  (2) Reading  (3) Finished")
    choice = ask_int("Choice:", 0, 3, read)
    status = None if choice == 0 else ReadingStatus(choice - 1)
    print_books(store.list_books(status), daily_rate)


def set_rate_flow(store: InventoryStore, read: InputFn = input) -> int:
    rate = ask_int("Pages/day:", 0, MAX_PAGES, read)
    if store.set_daily_rate(rate):
        print("Saved.")
    else:
        print("Could not save (still using new rate for this session).")
    return rate


def export_flow(store: InventoryStore, read: InputFn = input) -> None:
    path = ask_line("Export CSV path (e.g., books.csv):", read=read)
    print("Exported." if export_csv(store, path) else "Export failed.")


def import_flow(store: InventoryStore, read: InputFn = input) -> None:
    path = ask_line("Import CSV path:", read=read)
    result = import_csv(store, path)
    if result.ok:
        print(f"Imported {result.imported} books ({result.skipped} rows skipped).")
    else:
        print("Import failed.")


# ------------------------------------------------------------------------------
# Startup
# ------------------------------------------------------------------------------
def print_step(label: str, passed: bool) -> None:
    print(f"{label:<36}{'Passed!' if passed else 'FAILED'}")


def confirm_degraded_mode(report: StartupReport, read: InputFn = input) -> bool:
    """Print the startup checks and return False if the user chose to exit."""
    print_step("Connecting to the internet…", report.internet)
    print_step("Getting the Google API key…", report.google_key)
    print_step("Contacting Google Books API…", report.google_books)
    print_step("Connecting to Open Library…", report.open_library)

    if not report.internet:
        print("\nNo internet connection. You can continue but ISBN lookup will be manual.")
    elif not report.google_books and not report.open_library:
        print(
            "\nNeither Google Books nor Open Library is reachable right now.\n"
            "You can continue without online lookup, or exit and fix your network."
        )
    elif not report.google_books:
        print("\nGoogle Books is not ready (key/network). Open Library is available.")
        try:
            response = read("1) Exit now and fix\n2) Continue with Open Library only\nChoice: ")
        except EOFError:
            response = ""
        if response.strip().startswith("1"):
            return False
    return True


MENU = """
====== Book Tracker ======
1) List books
2) Add book (manual)
3) Add book (ISBN-10/13 + lookup)
4) Update current page
5) Mark status (To-Read / Reading / Finished)
6) Delete book
7) Search
8) List with filter
9) Set daily reading rate (pages/day) [current: {rate}]
10) Export CSV
11) Import CSV
12) Exit"""


def interactive_session(
    store: InventoryStore,
    chain: MetadataLookupChain,
    read: InputFn = input,
) -> None:
    """Run the menu loop until the user exits or input ends."""
    daily_rate = store.get_daily_rate()
    while True:
        print(MENU.format(rate=daily_rate))
        try:
            response = read("Choice: ").strip()
        except EOFError:
            break

        if response == "1":
            print_books(store.list_books(), daily_rate)
        elif response == "2":
            add_manual_flow(store, read)
        elif response == "3":
            add_by_isbn_flow(store, chain, read)
        elif response == "4":
            update_page_flow(store, read)
        elif response == "5":
            mark_status_flow(store, read)
        elif response == "6":
            delete_flow(store, read)
        elif response == "7":
            search_flow(store, daily_rate, read)
        elif response == "8":
            filtered_list_flow(store, daily_rate, read)
        elif response == "9":
            daily_rate = set_rate_flow(store, read)
        elif response == "10":
            export_flow(store, read)
        elif response == "11":
            import_flow(store, read)
        elif response == "12":
            break
        else:
            print("Invalid choice.")
    print("Bye!")


def main() -> int:
    try:
        config: AppConfig = load_config()
    except ValidationError as error:
        print(f"Invalid configuration: {error}", file=sys.stderr)
        return 2
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = InventoryStore(config.db_path)
    if not store.ok:
        print(f"Failed to open {config.db_path}", file=sys.stderr)
        return 1

    session = build_session()
    print("\nRunning startup checks…")
    report = run_startup_checks(config, session)
    try:
        if not confirm_degraded_mode(report):
            print("Bye!")
            return 0
        chain = build_lookup_chain(config, secondary_ready=report.google_books, session=session)
        interactive_session(store, chain)
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
