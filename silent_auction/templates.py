"""
HTML templates for the admin panel (Jinja2, rendered by Flask).
"""

BASE_STYLE = """
<style>
    body { font-family: Arial, sans-serif; line-height: 1.5; color: #333; background: #f3f4f6; margin: 0; }
    header { background: #1f2937; color: #d1d5db; padding: 8px 16px; display: flex; justify-content: flex-end; gap: 12px; }
    header button { background: none; border: none; color: #d1d5db; text-decoration: underline; cursor: pointer; }
    .container { max-width: 1000px; margin: 0 auto; padding: 16px; }
    h1 { text-align: center; color: #1e40af; }
    .banner { padding: 12px; border-radius: 6px; margin: 12px 0; }
    .banner.error { background: #fee2e2; color: #991b1b; }
    .banner.warning { background: #fef3c7; color: #92400e; }
    .banner.success { background: #d1fae5; color: #065f46; }
    .tabs { display: flex; flex-wrap: wrap; gap: 4px; margin-bottom: 12px; }
    .tabs a { padding: 8px 12px; background: #e5e7eb; border-radius: 6px 6px 0 0; text-decoration: none; color: #111; }
    .tabs a.active { background: #2563eb; color: white; }
    .card { background: white; border-radius: 8px; padding: 16px; margin-bottom: 16px; box-shadow: 0 1px 3px rgba(0,0,0,.1); }
    label { display: block; margin-top: 8px; font-weight: bold; }
    input { padding: 6px; width: 100%; box-sizing: border-box; border: 1px solid #ccc; border-radius: 4px; }
    button.primary { margin-top: 12px; background: #2563eb; color: white; border: none; padding: 8px 16px; border-radius: 4px; cursor: pointer; }
    button.danger { background: #dc2626; color: white; border: none; padding: 4px 10px; border-radius: 4px; cursor: pointer; }
    table { width: 100%; border-collapse: collapse; }
    th, td { padding: 6px; border-bottom: 1px solid #e5e7eb; text-align: left; }
    td.amount, th.amount { text-align: right; }
    .inline { display: inline; }
</style>
"""

LOGIN_HTML = """
<!DOCTYPE html>
<html>
<head><title>Silent Auction Admin - Sign in</title>""" + BASE_STYLE + """</head>
<body>
<div class="container" style="max-width: 360px;">
    <h1>Silent Auction Admin</h1>
    {% with messages = get_flashed_messages(with_categories=true) %}
      {% for category, message in messages %}
        <div class="banner {{ category }}">{{ message }}</div>
      {% endfor %}
    {% endwith %}
    <div class="card">
        <form method="post" action="{{ url_for('login') }}">
            <label>Email</label><input name="email" type="email" required>
            <label>Password</label><input name="password" type="password" required>
            <button class="primary" type="submit">Sign in</button>
            <button class="primary" type="submit" formaction="{{ url_for('signup') }}">Sign up</button>
        </form>
    </div>
</div>
</body>
</html>
"""

PANEL_HTML = """
<!DOCTYPE html>
<html>
<head><title>Silent Auction Admin Panel</title>""" + BASE_STYLE + """</head>
<body>
<header>
    <span>{{ user_email }}</span>
    <form class="inline" method="post" action="{{ url_for('logout') }}"><button type="submit">Sign out</button></form>
</header>
<div class="container">
    <h1>Silent Auction Admin Panel</h1>

    {% if status and status.warning %}
      <div class="banner {{ 'error' if status.configuration_error else 'warning' }}">{{ status.warning }}</div>
    {% endif %}
    {% with messages = get_flashed_messages(with_categories=true) %}
      {% for category, message in messages %}
        <div class="banner {{ category }}">{{ message }}</div>
      {% endfor %}
    {% endwith %}

    <nav class="tabs">
      {% for key, label in tabs %}
        <a href="{{ url_for('index', tab=key) }}" class="{{ 'active' if key == tab else '' }}">{{ label }}</a>
      {% endfor %}
      <a href="{{ url_for('export_csv') }}">Export CSV</a>
    </nav>

    {% if tab == 'add-item' %}
    <div class="card">
        <h2>Add Auction Item</h2>
        <form method="post" action="{{ url_for('add_item') }}">
            <label>Item ID</label><input name="item_id" required>
            <label>Item Name</label><input name="name" required>
            <label>Section</label><input name="section">
            <button class="primary" type="submit">Add Item</button>
        </form>
    </div>

    {% elif tab == 'add-attendee' %}
    <div class="card">
        <h2>Add Attendee</h2>
        <form method="post" action="{{ url_for('add_attendee') }}">
            <label>Bid #</label><input name="bid_num" required>
            <label>Name</label><input name="name" required>
            <button class="primary" type="submit">Add Attendee</button>
        </form>
    </div>

    {% elif tab == 'record-bid' or tab == 'lookup-item' %}
    <div class="card">
        <h2>{{ 'Record Winning Bid' if tab == 'record-bid' else 'Look Up Item' }}</h2>
        <form method="get" action="{{ url_for('index') }}">
            <input type="hidden" name="tab" value="{{ tab }}">
            <label>Item ID</label><input name="item_id" value="{{ lookup_item_id }}">
            <button class="primary" type="submit">Search</button>
        </form>
    </div>
    {% if item %}
    <div class="card">
        <h3>Item {{ item.id }}: {{ item.name }}</h3>
        <p>Section: {{ item.section or '-' }}</p>
        {% if item.winning_bid %}
          <p>Sold to Bid # {{ item.winning_bid.bidder_ref }}
             ({{ winner.name if winner else 'Unknown' }}) for {{ money(item.winning_bid.amount) }}</p>
          <form method="post" action="{{ url_for('edit_bid', item_id=item.id) }}">
              <label>New Bid #</label><input name="bid_num" value="{{ item.winning_bid.bidder_ref }}" required>
              <label>New Amount</label><input name="amount" value="{{ item.winning_bid.amount }}" required>
              <button class="primary" type="submit">Update Winning Bid</button>
          </form>
          <form method="post" action="{{ url_for('clear_bid', item_id=item.id) }}">
              <button class="danger" type="submit">Mark Unsold</button>
          </form>
        {% else %}
          <p>Available</p>
          <form method="post" action="{{ url_for('record_bid', item_id=item.id) }}">
              <label>Winning Bid #</label><input name="bid_num" required>
              <label>Amount</label><input name="amount" required>
              <button class="primary" type="submit">Record Winning Bid</button>
          </form>
        {% endif %}
        <h4>Edit Item</h4>
        <form method="post" action="{{ url_for('edit_item', item_id=item.id) }}">
            <label>Item ID</label><input name="new_id" value="{{ item.id }}" required>
            <label>Name</label><input name="name" value="{{ item.name }}" required>
            <label>Section</label><input name="section" value="{{ item.section }}">
            <button class="primary" type="submit">Save Item</button>
        </form>
        <form method="post" action="{{ url_for('delete_item', item_id=item.id) }}"
              onsubmit="return confirm('Delete item {{ item.id }}?');">
            <button class="danger" type="submit">Delete Item</button>
        </form>
    </div>
    {% endif %}

    {% elif tab == 'lookup-attendee' %}
    <div class="card">
        <h2>Look Up Attendee</h2>
        <form method="get" action="{{ url_for('index') }}">
            <input type="hidden" name="tab" value="lookup-attendee">
            <label>Bid #</label><input name="bid_num" value="{{ lookup_bid_num }}">
            <button class="primary" type="submit">Search</button>
        </form>
    </div>
    {% if attendee %}
    <div class="card">
        <h3>{{ attendee.name }} (Bid # {{ attendee.bid_num }})</h3>
        <table>
            <tr><th>Item ID</th><th>Name</th><th>Section</th><th class="amount">Bid Amount</th></tr>
            {% for won in won_items %}
            <tr><td>{{ won.id }}</td><td>{{ won.name }}</td><td>{{ won.section }}</td>
                <td class="amount">{{ money(won.winning_bid.amount) }}</td></tr>
            {% else %}
            <tr><td colspan="4">No items won yet.</td></tr>
            {% endfor %}
            <tr><th colspan="3">Total</th><th class="amount">{{ money(total) }}</th></tr>
        </table>
        <p><a href="{{ url_for('receipt', bid_num=attendee.bid_num) }}" target="_blank">Print Receipt</a></p>
        <h4>Edit Attendee</h4>
        <form method="post" action="{{ url_for('edit_attendee', bid_num=attendee.bid_num) }}">
            <label>Bid #</label><input name="new_bid_num" value="{{ attendee.bid_num }}" required>
            <label>Name</label><input name="name" value="{{ attendee.name }}" required>
            <button class="primary" type="submit">Save Attendee</button>
        </form>
        <form method="post" action="{{ url_for('delete_attendee', bid_num=attendee.bid_num) }}"
              onsubmit="return confirm('Delete attendee {{ attendee.bid_num }}? Their items become unsold.');">
            <button class="danger" type="submit">Delete Attendee</button>
        </form>
    </div>
    {% endif %}

    {% elif tab == 'items' %}
    <div class="card">
        <h2>All Items ({{ items|length }})</h2>
        <form method="get" action="{{ url_for('index') }}">
            <input type="hidden" name="tab" value="items">
            <label>Search by ID or name</label><input name="q" value="{{ search_term }}">
            <input type="hidden" name="sort" value="{{ sort }}"><input type="hidden" name="order" value="{{ order }}">
        </form>
        <table>
            <tr>
            {% for key in sort_keys %}
              <th><a href="{{ url_for('index', tab='items', q=search_term, sort=key,
                               order=('desc' if sort == key and order == 'asc' else 'asc')) }}">{{ key|title }}</a></th>
            {% endfor %}
              <th class="amount">Winning Bid</th><th>Winner</th>
            </tr>
            {% for row in items %}
            <tr>
                <td><a href="{{ url_for('index', tab='lookup-item', item_id=row.id) }}">{{ row.id }}</a></td>
                <td>{{ row.name }}</td><td>{{ row.section }}</td><td>{{ row.status|title }}</td>
                <td class="amount">{{ money(row.winning_bid.amount) if row.winning_bid else '-' }}</td>
                <td>{{ row.winning_bid.bidder_ref if row.winning_bid else '-' }}</td>
            </tr>
            {% endfor %}
        </table>
    </div>

    {% elif tab == 'attendees' %}
    <div class="card">
        <h2>All Attendees ({{ summaries|length }})</h2>
        <table>
            <tr><th>Bid #</th><th>Name</th><th>Items Won</th><th class="amount">Total Spent</th></tr>
            {% for s in summaries %}
            <tr>
                <td><a href="{{ url_for('index', tab='lookup-attendee', bid_num=s.attendee.bid_num) }}">{{ s.attendee.bid_num }}</a></td>
                <td>{{ s.attendee.name }}</td><td>{{ s.items_won }}</td>
                <td class="amount">{{ money(s.total) }}</td>
            </tr>
            {% endfor %}
        </table>
    </div>
    {% endif %}
</div>
</body>
</html>
"""

RECEIPT_HTML = """
<!DOCTYPE html>
<html>
<head><title>Receipt - Bid # {{ receipt.attendee.bid_num }}</title>""" + BASE_STYLE + """</head>
<body style="background: white;" onload="window.print()">
<div class="container">
    <h1 style="text-align: left; color: #111;">Silent Auction Receipt</h1>
    <h2>Attendee Information</h2>
    <p>Name: {{ receipt.attendee.name }}</p>
    <p>Bid #: {{ receipt.attendee.bid_num }}</p>
    <h2>Won Items</h2>
    <table>
        <tr><th>Item ID</th><th>Name</th><th>Section</th><th class="amount">Bid Amount</th></tr>
        {% for item in receipt.items %}
        <tr><td>{{ item.id }}</td><td>{{ item.name }}</td><td>{{ item.section }}</td>
            <td class="amount">{{ money(item.winning_bid.amount) }}</td></tr>
        {% endfor %}
        <tr><th colspan="3">Total</th><th class="amount">{{ money(receipt.total) }}</th></tr>
    </table>
    <p style="text-align: center; color: #6b7280; margin-top: 32px;">Thank you for your participation!</p>
</div>
</body>
</html>
"""
