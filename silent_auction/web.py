"""
Admin panel web server.

A Flask app that:
1. Gates every page behind Supabase sign-in plus the approved users list
2. Renders the panel tabs from ledger reads
3. Turns form posts into ledger operations and flashes typed failures
4. Serves printable receipts and the CSV export

View state (tab, looked-up keys, search text, sort) lives in query
parameters only; the auction data is read from and changed through the
ledger.
"""

import logging
from functools import wraps
from typing import Callable, Optional

from flask import (
    Flask, Response, flash, redirect, render_template_string, request, session, url_for,
)

from .auth import AuthGate
from .config import AppConfig, get_app_config
from .errors import (
    AccessDenied, AuthenticationFailed, ConfigurationError, DuplicateKey, InvalidInput,
    NotFound, RemoteWriteFailed,
)
from .models import format_money
from .panel import AdminPanel, get_panel
from .reports import SORT_KEYS, build_receipt, export_csv, search_items, sort_items
from .templates import LOGIN_HTML, PANEL_HTML, RECEIPT_HTML

logger = logging.getLogger(__name__)

TABS = [
    ("add-item", "Add Item"),
    ("add-attendee", "Add Attendee"),
    ("record-bid", "Record Winning Bid"),
    ("lookup-item", "Look Up Item"),
    ("lookup-attendee", "Look Up Attendee"),
    ("items", "All Items"),
    ("attendees", "All Attendees"),
]
TAB_KEYS = {key for key, _ in TABS}

RETRY_MESSAGE = "Could not save to the database ({cause}). Nothing was changed; please try again."


def create_app(
    panel: Optional[AdminPanel] = None,
    auth: Optional[AuthGate] = None,
    config: Optional[AppConfig] = None,
) -> Flask:
    """
    Build the Flask app around a started panel.

    Args:
        panel: The panel to serve (defaults to the started singleton)
        auth: Sign-in gate (defaults to Supabase Auth)
        config: App configuration (defaults to environment)
    """
    config = config or get_app_config()
    panel = panel or get_panel()
    auth = auth or AuthGate(app_config=config)
    ledger = panel.ledger

    app = Flask(__name__)
    app.secret_key = config.secret_key
    app.extensions["auction_panel"] = panel
    app.jinja_env.globals["money"] = format_money

    def login_required(view: Callable) -> Callable:
        @wraps(view)
        def decorated(*args, **kwargs):
            if not session.get("user_email"):
                return redirect(url_for("login"))
            return view(*args, **kwargs)
        return decorated

    def run_operation(operation: Callable, success: str) -> bool:
        """Call a ledger operation and flash its outcome."""
        try:
            operation()
        except (InvalidInput, DuplicateKey, NotFound) as e:
            flash(str(e), "warning")
            return False
        except RemoteWriteFailed as e:
            flash(RETRY_MESSAGE.format(cause=e.cause or e), "error")
            return False
        flash(success, "success")
        return True

    # =========================================================================
    # AUTHENTICATION
    # =========================================================================

    @app.route("/login", methods=["GET", "POST"])
    def login():
        if request.method == "POST":
            try:
                user = auth.sign_in(request.form.get("email", ""), request.form.get("password", ""))
            except (AuthenticationFailed, AccessDenied, ConfigurationError) as e:
                flash(str(e), "error")
            else:
                session.clear()
                session["user_email"] = user.email
                return redirect(url_for("index"))
        return render_template_string(LOGIN_HTML)

    @app.route("/signup", methods=["POST"])
    def signup():
        try:
            message = auth.sign_up(request.form.get("email", ""), request.form.get("password", ""))
        except (AuthenticationFailed, ConfigurationError) as e:
            flash(str(e), "error")
        else:
            flash(message, "success")
        return redirect(url_for("login"))

    @app.route("/logout", methods=["POST"])
    def logout():
        session.clear()
        return redirect(url_for("login"))

    # =========================================================================
    # PANEL
    # =========================================================================

    @app.route("/")
    @login_required
    def index():
        tab = request.args.get("tab", "add-item")
        if tab not in TAB_KEYS:
            tab = "add-item"

        context = {
            "tab": tab,
            "tabs": TABS,
            "status": panel.status,
            "user_email": session.get("user_email"),
            "sort_keys": SORT_KEYS,
            "lookup_item_id": request.args.get("item_id", ""),
            "lookup_bid_num": request.args.get("bid_num", ""),
            "search_term": request.args.get("q", ""),
            "sort": request.args.get("sort", "id"),
            "order": request.args.get("order", "asc"),
        }

        if tab in ("record-bid", "lookup-item") and context["lookup_item_id"]:
            item = ledger.find_item(context["lookup_item_id"])
            if item is None:
                flash(f"No item found with ID {context['lookup_item_id']}", "warning")
            else:
                context["item"] = item
                if item.winning_bid:
                    context["winner"] = ledger.find_attendee(item.winning_bid.bidder_ref)

        elif tab == "lookup-attendee" and context["lookup_bid_num"]:
            attendee = ledger.find_attendee(context["lookup_bid_num"])
            if attendee is None:
                flash(f"No attendee found with Bid # {context['lookup_bid_num']}", "warning")
            else:
                context["attendee"] = attendee
                context["won_items"] = ledger.items_won_by(attendee.bid_num)
                context["total"] = ledger.total_spent(attendee.bid_num)

        elif tab == "items":
            items = search_items(ledger.items(), context["search_term"])
            try:
                items = sort_items(items, context["sort"], context["order"])
            except InvalidInput as e:
                flash(str(e), "warning")
                context["sort"], context["order"] = "id", "asc"
                items = sort_items(items)
            context["items"] = items

        elif tab == "attendees":
            context["summaries"] = [
                {
                    "attendee": attendee,
                    "items_won": len(ledger.items_won_by(attendee.bid_num)),
                    "total": ledger.total_spent(attendee.bid_num),
                }
                for attendee in ledger.attendees()
            ]

        return render_template_string(PANEL_HTML, **context)

    # =========================================================================
    # ITEMS
    # =========================================================================

    @app.route("/items", methods=["POST"])
    @login_required
    def add_item():
        form = request.form
        run_operation(
            lambda: ledger.add_item(form.get("item_id"), form.get("name"), form.get("section")),
            f"Added item {form.get('item_id', '').strip()}",
        )
        return redirect(url_for("index", tab="add-item"))

    @app.route("/items/<item_id>/edit", methods=["POST"])
    @login_required
    def edit_item(item_id: str):
        form = request.form
        new_id = (form.get("new_id") or item_id).strip()
        ok = run_operation(
            lambda: ledger.rename_or_rekey_item(item_id, new_id, form.get("name"), form.get("section")),
            f"Saved item {new_id}",
        )
        return redirect(url_for("index", tab="lookup-item", item_id=new_id if ok else item_id))

    @app.route("/items/<item_id>/delete", methods=["POST"])
    @login_required
    def delete_item(item_id: str):
        if run_operation(lambda: ledger.delete_item(item_id), f"Deleted item {item_id}"):
            return redirect(url_for("index", tab="items"))
        return redirect(url_for("index", tab="lookup-item", item_id=item_id))

    @app.route("/items/<item_id>/bid", methods=["POST"])
    @login_required
    def record_bid(item_id: str):
        form = request.form
        run_operation(
            lambda: ledger.record_winning_bid(item_id, form.get("bid_num"), form.get("amount")),
            f"Recorded winning bid for item {item_id}",
        )
        return redirect(url_for("index", tab="record-bid", item_id=item_id))

    @app.route("/items/<item_id>/bid/edit", methods=["POST"])
    @login_required
    def edit_bid(item_id: str):
        form = request.form
        run_operation(
            lambda: ledger.edit_winning_bid(item_id, form.get("bid_num"), form.get("amount")),
            f"Updated winning bid for item {item_id}",
        )
        return redirect(url_for("index", tab="lookup-item", item_id=item_id))

    @app.route("/items/<item_id>/bid/clear", methods=["POST"])
    @login_required
    def clear_bid(item_id: str):
        run_operation(lambda: ledger.clear_winning_bid(item_id), f"Item {item_id} is now unsold")
        return redirect(url_for("index", tab="lookup-item", item_id=item_id))

    # =========================================================================
    # ATTENDEES
    # =========================================================================

    @app.route("/attendees", methods=["POST"])
    @login_required
    def add_attendee():
        form = request.form
        run_operation(
            lambda: ledger.add_attendee(form.get("bid_num"), form.get("name")),
            f"Added attendee Bid # {form.get('bid_num', '').strip()}",
        )
        return redirect(url_for("index", tab="add-attendee"))

    @app.route("/attendees/<bid_num>/edit", methods=["POST"])
    @login_required
    def edit_attendee(bid_num: str):
        form = request.form
        new_bid_num = (form.get("new_bid_num") or bid_num).strip()
        ok = run_operation(
            lambda: ledger.rename_or_rekey_attendee(bid_num, new_bid_num, form.get("name")),
            f"Saved attendee Bid # {new_bid_num}",
        )
        return redirect(url_for("index", tab="lookup-attendee", bid_num=new_bid_num if ok else bid_num))

    @app.route("/attendees/<bid_num>/delete", methods=["POST"])
    @login_required
    def delete_attendee(bid_num: str):
        if run_operation(lambda: ledger.delete_attendee(bid_num), f"Deleted attendee Bid # {bid_num}"):
            return redirect(url_for("index", tab="attendees"))
        return redirect(url_for("index", tab="lookup-attendee", bid_num=bid_num))

    @app.route("/attendees/<bid_num>/receipt")
    @login_required
    def receipt(bid_num: str):
        try:
            data = build_receipt(ledger, bid_num)
        except NotFound as e:
            flash(str(e), "warning")
            return redirect(url_for("index", tab="lookup-attendee"))
        return render_template_string(RECEIPT_HTML, receipt=data)

    # =========================================================================
    # EXPORT & HEALTH
    # =========================================================================

    @app.route("/export.csv", endpoint="export_csv")
    @login_required
    def export_csv_download():
        return Response(
            export_csv(ledger),
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=auction_data.csv"},
        )

    @app.route("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok", "online": panel.sync.online}

    return app
