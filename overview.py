#!/usr/bin/env python3
import argparse
import email.utils
import logging
import sys
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

from tqdm import tqdm

from jwz_threading import simplify_subject, thread
from thread_view import print_thread, flatten

logger = logging.getLogger(__name__)

# Mandatory overview format (RFC 2980):
# articleNumber\tSubject\tAuthor\tDate\tID\tReference(s)\tByte Count\tLine Count
OVERVIEW_FIELDS = 7


class Article:
    """One line of a newsgroup overview, threadable by jwz_threading"""

    def __init__(
        self,
        article_number: int = -1,
        subject: str = "",
        from_addr: str = "",
        date: str = "",
        article_id: str = "",
        references: Optional[List[str]] = None,
    ):
        self.article_number = article_number
        self._subject = subject
        self.from_addr = from_addr
        self.date = date
        self.article_id = article_id
        self._references: List[str] = list(references or [])
        self._simplified = None

        self.kid: Optional["Article"] = None
        self.next: Optional["Article"] = None

    def __repr__(self):
        return f"<Article {self.article_number} {self.article_id} {self._subject!r}>"

    @property
    def subject(self) -> str:
        return self._subject

    @subject.setter
    def subject(self, value: str):
        self._subject = value
        self._simplified = None

    @property
    def message_id(self) -> str:
        return self.article_id

    @property
    def references(self) -> List[str]:
        return list(self._references)

    def add_reference(self, refs: str):
        """Add the ids of a whitespace-separated References header"""
        if refs:
            self._references.extend(refs.split())

    @property
    def simplified_subject(self) -> str:
        if self._simplified is None:
            self._simplified = simplify_subject(self._subject)
        return self._simplified[0]

    @property
    def subject_is_reply(self) -> bool:
        if self._simplified is None:
            self._simplified = simplify_subject(self._subject)
        return self._simplified[1]

    @property
    def date_sent(self) -> Optional[datetime]:
        try:
            return email.utils.parsedate_to_datetime(self.date)
        except (TypeError, ValueError, IndexError):
            return None

    def is_dummy(self) -> bool:
        return self.article_number == -1

    def make_dummy(self) -> "Article":
        return Article(subject=self._subject, from_addr=self.from_addr, date=self.date)

    def set_child(self, child: Optional["Article"]):
        self.kid = child
        self._simplified = None

    def set_next(self, next: Optional["Article"]):
        self.next = next
        self._simplified = None


def parse_overview_line(line: str) -> Article:
    """Parse an overview line; lines that don't parse become dummy articles"""
    line = line.rstrip("\r\n")
    article = Article(subject=line)
    parts = line.split("\t")
    if len(parts) < OVERVIEW_FIELDS:
        logger.warning(f"Skipping malformed overview line: {line!r}")
        return article

    try:
        number = int(parts[0])
    except ValueError:
        logger.warning(f"Skipping overview line with bad article number: {line!r}")
        return article

    article.article_number = number
    article.subject = parts[1]
    article.from_addr = parts[2]
    article.date = parts[3]
    article.article_id = parts[4]
    article.add_reference(parts[5])
    return article


def read_overview(lines: Iterable[str]) -> Iterator[Article]:
    """Parse a dot-terminated overview response"""
    for line in lines:
        line = line.rstrip("\r\n")
        if line == ".":
            break
        if line.startswith(".."):
            line = line[1:]
        if not line:
            continue
        yield parse_overview_line(line)


def load_overview(path: str, progress: bool = False) -> List[Article]:
    if path == "-":
        articles = list(read_overview(tqdm(sys.stdin, disable=not progress)))
    else:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            articles = list(read_overview(tqdm(f, disable=not progress)))

    skipped = sum(1 for article in articles if article.is_dummy())
    logger.info(f"Loaded {len(articles) - skipped} articles from {path} ({skipped} skipped)")
    return articles


def main(argv=None):
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Thread a newsgroup overview dump")
    parser.add_argument("overview", help="Overview file path, or - for stdin")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar while reading")
    parser.add_argument("--flat", action="store_true", help="Print an indented listing instead of the thread tree")

    args = parser.parse_args(argv)

    root = thread(load_overview(args.overview, progress=args.progress))
    if root is None:
        logger.info("No articles to thread")
        return 1

    if args.flat:
        for msg in flatten(root):
            print("  " * msg["level"] + (msg["display_subject"] or "...") + f"\t{msg['from']}")
    else:
        print_thread(root)
    return 0


if __name__ == "__main__":
    sys.exit(main())
