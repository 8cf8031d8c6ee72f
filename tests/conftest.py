import itertools

import pytest

from overview import Article

_numbers = itertools.count(1)

OVERVIEW_LINES = [
    "1\tMeeting tomorrow\tAlice <alice@example.org>\tMon, 01 Jan 2024 10:00:00 +0000\t<1@example.org>\t\t120\t4",
    "2\tRe: Meeting tomorrow\tBob <bob@example.org>\tMon, 01 Jan 2024 11:00:00 +0000\t<2@example.org>\t<1@example.org>\t130\t5",
    "3\tRe: Meeting tomorrow\tAlice <alice@example.org>\tMon, 01 Jan 2024 12:00:00 +0000\t<3@example.org>\t<1@example.org> <2@example.org>\t140\t6",
    "4\tRelease schedule\tCarol <carol@example.org>\tTue, 02 Jan 2024 09:00:00 +0000\t<4@example.org>\t\t100\t3",
    "5\tRe: Lost thread\tDave <dave@example.org>\tWed, 03 Jan 2024 09:00:00 +0000\t<5@example.org>\t<gone@example.org>\t100\t3",
    "6\tRe: Lost thread\tErin <erin@example.org>\tWed, 03 Jan 2024 10:00:00 +0000\t<6@example.org>\t<gone@example.org>\t100\t3",
    "this line is not an overview entry",
    ".",
]


def make_article(article_id, refs=(), subject="", from_addr="someone@example.org"):
    return Article(
        article_number=next(_numbers),
        subject=subject,
        from_addr=from_addr,
        article_id=article_id,
        references=list(refs),
    )


@pytest.fixture
def overview_file(tmp_path):
    path = tmp_path / "overview.txt"
    path.write_text("\n".join(OVERVIEW_LINES) + "\n", encoding="utf-8")
    return str(path)
