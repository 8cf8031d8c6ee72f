#!/usr/bin/env python3

import sys
from typing import Iterator, List, Optional, Tuple

from jwz_threading import simplify_subject


def _display_subject(msg, parent_subject, level):
    display_subject = msg.subject
    if parent_subject and level > 0:
        parent_simplified, _ = simplify_subject(parent_subject)
        if parent_simplified and parent_simplified in msg.simplified_subject:
            display_subject = ""
    return display_subject


def roots(root) -> Iterator:
    """Walk the chain of independent threads starting at root"""
    while root is not None:
        yield root
        root = root.next


def iter_thread(root, depth: int = 0) -> Iterator[Tuple[int, object]]:
    """Pre-order walk of root, its replies and the threads that follow it"""
    stack = [(root, depth)]
    while stack:
        article, level = stack.pop()
        if article is None:
            continue
        yield level, article
        # kid must come out before next
        stack.append((article.next, level))
        stack.append((article.kid, level + 1))


def print_thread(root, depth: int = 0, file=None):
    file = file or sys.stdout
    for level, article in iter_thread(root, depth):
        print("==>" * level + f"{article.subject}\t{article.from_addr}\t{article.article_id}", file=file)


def count_articles(root) -> int:
    """Count the real articles in root's thread, ignoring its siblings"""
    if root is None:
        return 0
    return sum(1 for _, article in iter_thread(root.kid) if not article.is_dummy()) + (not root.is_dummy())


def find_thread(root, message_id: str):
    """Return the top of the thread that contains message_id"""
    for top in roots(root):
        if top.article_id == message_id:
            return top
        if any(article.article_id == message_id for _, article in iter_thread(top.kid)):
            return top
    return None


def flatten(root, single: bool = False) -> List[dict]:
    """Flatten threads into display rows; with single only root's own thread"""
    messages = []
    stack: List[Tuple[object, int, Optional[str]]] = [(root, 0, None)]
    while stack:
        msg, level, parent_subject = stack.pop()
        if msg is None:
            continue

        if not (single and msg is root):
            stack.append((msg.next, level, parent_subject))

        if msg.is_dummy():
            # Dummy article - children sit at its level with the same parent subject
            stack.append((msg.kid, level, parent_subject))
            continue

        messages.append({
            'message_id': msg.article_id,
            'subject': msg.subject,
            'display_subject': _display_subject(msg, parent_subject, level),
            'from': msg.from_addr,
            'date': msg.date,
            'level': level,
        })
        stack.append((msg.kid, level + 1, msg.subject))

    return messages
