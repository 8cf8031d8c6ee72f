#!/usr/bin/env python3

import logging
import os
from flask import Flask, jsonify, request
from flask_httpauth import HTTPBasicAuth
from jwz_threading import thread
from overview import load_overview
from search import search
from thread_view import find_thread, flatten

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['OVERVIEW_PATH'] = os.environ.get('OVERVIEW_PATH', 'overview.txt')
app.config['PASSWORD'] = os.environ.get('PASSWORD')
auth = HTTPBasicAuth()

@auth.verify_password
def verify_password(username, password):
    if app.config.get('PASSWORD'):
        return password == app.config['PASSWORD']
    return True  # No auth if PASSWORD not set

@app.route("/")
@auth.login_required
def index():
    search_query = request.args.get('search', '').strip()
    threads = search(app.config['OVERVIEW_PATH'], search_query if search_query else None)
    return jsonify(threads)

@app.route("/<path:message_id>/")
@auth.login_required
def view_message_by_id(message_id):
    # Threads are rebuilt from the overview on every request
    root = thread(load_overview(app.config['OVERVIEW_PATH']))
    top = find_thread(root, message_id)

    if top is None:
        logger.info(f"No thread found for {message_id}")
        return f"Could not find thread for message ID {message_id}", 404

    return jsonify(flatten(top, single=True))

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get("PORT", 5000))
    app.run(debug=True, host="0.0.0.0", port=port)
