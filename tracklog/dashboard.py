import logging

from jinja2 import Environment

from .records import LogRecord
from .store import DEFAULT_PAGE_SIZE, KVStore, list_all_keys

logger = logging.getLogger(__name__)

# autoescape is the single escaping point for every interpolated value
_env = Environment(autoescape=True)


def load_records(store: KVStore, page_size: int = DEFAULT_PAGE_SIZE) -> list[LogRecord]:
    """
    Every stored record, newest key first.
    Keys that vanish between listing and fetching, or hold unreadable
    values, are skipped.
    """
    keys = list_all_keys(store, page_size=page_size)
    records = []
    for key in reversed(keys):
        raw = store.get(key)
        if raw is None:
            logger.warning("Log %s disappeared before it could be read; skipping", key)
            continue
        try:
            records.append(LogRecord.from_json(raw))
        except ValueError as e:
            logger.warning("Skipping unreadable log %s: %s", key, e)
    return records


def render_dashboard(records) -> str:
    """Pure: sequence of LogRecord -> HTML document."""
    records = list(records)
    return _template.render(records=records, total=len(records))


DASHBOARD_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<meta name="viewport" content="width=device-width,initial-scale=1"/>
<title>Tracking Dashboard</title>
<style>
:root {
  --bg-main:#0B132E;
  --bg-card:rgba(30,50,120,.2);
  --bg-card-hover:rgba(30,50,120,.3);
  --text-main:#FFFFFF;
  --text-dim:#B7BECD;
  --border-card:#1E3278;
  --border-hover:#9BAEEE;
  --accent:#FF5A00;
  --accent-2:#9BAEEE;
  --gold:#FFD700;
  --radius:8px;
  --font:system-ui,-apple-system,BlinkMacSystemFont,"Segoe UI",Roboto,Arial,sans-serif;
}
*{box-sizing:border-box}
body{
  font-family:var(--font);
  background:var(--bg-main);
  color:var(--text-dim);
  padding:20px;
  margin:0;
}
h1{color:var(--text-main);margin:0 0 10px 0}

.dashboard-header{
  position:sticky;
  top:0;
  background:var(--bg-main);
  padding:20px 0;
  z-index:100;
  border-bottom:2px solid var(--border-card);
  margin-bottom:20px;
}
.search-container{
  margin:15px 0;
  display:flex;
  gap:10px;
  align-items:center;
}
.search-input{
  flex:1;
  padding:12px 16px;
  background:var(--bg-card-hover);
  border:2px solid var(--border-card);
  border-radius:var(--radius);
  color:var(--text-main);
  font-size:16px;
}
.search-input:focus{
  outline:none;
  border-color:var(--accent);
  box-shadow:0 0 0 3px rgba(255,90,0,.1);
}
.search-input::placeholder{color:var(--text-dim);opacity:.6}
.clear-button{
  padding:12px 20px;
  background:var(--accent);
  color:#fff;
  border:none;
  border-radius:var(--radius);
  cursor:pointer;
  font-weight:bold;
}
.clear-button:hover{background:#ff6a10}

.stats-bar{display:flex;gap:20px;margin:10px 0;font-size:14px}
.stat-item{padding:8px 12px;background:var(--bg-card-hover);border-radius:6px}
.stat-number{color:var(--accent);font-weight:bold;font-size:18px}

.log-entry{
  margin:10px 0;
  padding:15px;
  border:1px solid var(--border-card);
  border-radius:var(--radius);
  background:var(--bg-card);
}
.log-entry.hidden{display:none}
.log-entry:hover{border-color:var(--border-hover);background:var(--bg-card-hover)}
.log-type{
  display:inline-block;
  padding:4px 8px;
  border-radius:4px;
  font-weight:bold;
  margin-bottom:8px;
}
.type-pixel{background:var(--accent);color:#fff}
.type-js{background:var(--accent-2);color:var(--bg-main)}
.log-detail{margin:4px 0;font-size:14px}
.session-id{color:var(--accent);font-family:monospace}
.section-tag{color:var(--accent-2);font-weight:bold}
.action-tag{color:var(--gold);font-weight:bold}
pre{background:var(--bg-main);padding:10px;border-radius:4px;overflow-x:auto}

.empty-state{text-align:center;padding:60px 20px;color:var(--text-dim)}
.empty-state h2{color:var(--text-main);margin-bottom:10px}
.empty-state p{font-size:16px;max-width:500px;margin:0 auto;line-height:1.6}

.no-results{
  text-align:center;
  padding:40px;
  color:var(--text-dim);
  font-size:18px;
  display:none;
}
.no-results.show{display:block}
</style>
</head>
<body>

<div class="dashboard-header">
  <h1>Tracking Dashboard</h1>

  <div class="stats-bar">
    <div class="stat-item">
      Total: <span class="stat-number" id="totalCount">{{ total }}</span>
    </div>
    <div class="stat-item">
      Showing: <span class="stat-number" id="visibleCount">{{ total }}</span>
    </div>
  </div>

  <div class="search-container">
    <input
      type="text"
      id="searchInput"
      class="search-input"
      placeholder="Filter by session, section, action, IP, time, or any text..."
      autocomplete="off"
    >
    <button class="clear-button" id="clearButton">Clear</button>
  </div>
</div>

<div id="logsContainer">
{% if not records %}
  <div class="empty-state" id="emptyState">
    <h2>No Tracking Logs Yet</h2>
    <p>
      Logs will appear here once visitors load a page carrying the tracking pixel
      or the event script. Each tracked navigation click is recorded automatically.
    </p>
  </div>
{% endif %}
{% for r in records %}
  <div class="log-entry" data-searchable="{{ r.searchable_text() }}">
    <span class="log-type type-{{ r.kind.value }}">{{ r.kind.value | upper }}</span>
    <div class="log-detail"><strong>Time:</strong> {{ r.timestamp }}</div>
    <div class="log-detail"><strong>Session:</strong> <span class="session-id">{{ r.session or "N/A" }}</span></div>
    {% if r.action %}<div class="log-detail"><strong>Action:</strong> <span class="action-tag">{{ r.action }}</span></div>{% endif %}
    {% if r.section %}<div class="log-detail"><strong>Section:</strong> <span class="section-tag">{{ r.section }}</span></div>{% endif %}
    <div class="log-detail"><strong>User-Agent:</strong> {{ r.user_agent or "" }}</div>
    {% if r.country %}<div class="log-detail"><strong>Country:</strong> {{ r.country }}</div>{% endif %}
    {% if r.referer %}<div class="log-detail"><strong>Referer:</strong> {{ r.referer }}</div>{% endif %}
    {% if r.has_body %}<pre>{{ r.body_pretty() }}</pre>{% endif %}
  </div>
{% endfor %}
</div>

<div class="no-results" id="noResults">
  No entries match your search
</div>

<script>
  const searchInput = document.getElementById('searchInput');
  const clearButton = document.getElementById('clearButton');
  const logEntries = document.querySelectorAll('.log-entry');
  const visibleCount = document.getElementById('visibleCount');
  const noResults = document.getElementById('noResults');

  function filterLogs() {
    const searchTerm = searchInput.value.toLowerCase().trim();
    let count = 0;

    logEntries.forEach(entry => {
      const searchableText = entry.getAttribute('data-searchable') || '';
      if (searchTerm === '' || searchableText.includes(searchTerm)) {
        entry.classList.remove('hidden');
        count++;
      } else {
        entry.classList.add('hidden');
      }
    });

    visibleCount.textContent = count;
    noResults.classList.toggle('show', count === 0 && searchTerm !== '');
  }

  searchInput.addEventListener('input', filterLogs);

  clearButton.addEventListener('click', () => {
    searchInput.value = '';
    filterLogs();
    searchInput.focus();
  });

  // Ctrl/Cmd+K focuses the filter, Escape clears it
  document.addEventListener('keydown', (e) => {
    if ((e.ctrlKey || e.metaKey) && e.key === 'k') {
      e.preventDefault();
      searchInput.focus();
      searchInput.select();
    }
    if (e.key === 'Escape' && document.activeElement === searchInput) {
      searchInput.value = '';
      filterLogs();
    }
  });
</script>

</body>
</html>
"""

_template = _env.from_string(DASHBOARD_HTML)
