from datetime import datetime

from jwz_threading import thread
from overview import load_overview
from thread_view import roots, count_articles


def search(overview_path, search_query=None, limit=100):
    root = thread(load_overview(overview_path))
    return _search(root, search_query, limit)


def _first_real(article):
    # Dummy roots carry no id, borrow the first real reply's
    while article is not None and article.is_dummy():
        article = article.kid
    return article


def _search(root, search_query, limit=100):
    needle = search_query.lower() if search_query else None

    threads = []
    for top in roots(root):
        if needle and not (needle in top.subject.lower() or needle in top.from_addr.lower()):
            continue

        first = _first_real(top)
        date_sent = top.date_sent
        threads.append({
            'message_id': first.article_id if first else top.article_id,
            'subject': top.subject,
            'from': top.from_addr,
            'date': date_sent.strftime('%Y-%m-%d') if date_sent else '',
            'timestamp': date_sent.timestamp() if date_sent else 0,
            'message_count': count_articles(top),
        })

    threads.sort(key=lambda t: t['timestamp'], reverse=True)
    for t in threads:
        del t['timestamp']
    return threads[:limit]
