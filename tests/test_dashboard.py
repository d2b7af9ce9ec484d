import re

from tracklog.dashboard import load_records, render_dashboard
from tracklog.records import LogKind, LogRecord
from tracklog.store import MemoryStore
from tracklog.writer import store_log

SEARCHABLE = re.compile(r'data-searchable="([^"]*)"')


def pixel(session, **kw):
    return LogRecord(kind=LogKind.PIXEL, timestamp="2025-01-15 13:30:05 CET", session=session, **kw)


def searchable_attrs(html):
    return SEARCHABLE.findall(html)


def matches(html, query):
    """Mirror of the in-page filter: trimmed, lower-cased substring match."""
    term = query.strip().lower()
    return [s for s in searchable_attrs(html) if term == "" or term in s]


class TestLoadRecords:
    def test_newest_first(self):
        store = MemoryStore()
        for i, session in enumerate(["oldest", "middle", "newest"]):
            store_log(store, pixel(session), millis=1700000000000 + i)
        sessions = [r.session for r in load_records(store, page_size=2)]
        assert sessions == ["newest", "middle", "oldest"]

    def test_reads_across_pages(self):
        store = MemoryStore()
        for i in range(9):
            store_log(store, pixel(f"s{i}"), millis=1700000000000 + i)
        assert len(load_records(store, page_size=2)) == 9

    def test_skips_vanished_keys(self):
        class VanishingStore(MemoryStore):
            def get(self, key):
                if key == "log:2":
                    return None
                return super().get(key)

        store = VanishingStore()
        for i in range(1, 4):
            store_log(store, pixel(f"s{i}"), millis=i)
        assert [r.session for r in load_records(store)] == ["s3", "s1"]

    def test_skips_unreadable_values(self, caplog):
        store = MemoryStore()
        store.put("log:1", "not json")
        store.put("log:2", "[]")
        store_log(store, pixel("ok"), millis=3)
        assert [r.session for r in load_records(store)] == ["ok"]
        assert "Skipping unreadable log log:1" in caplog.text


class TestRenderDashboard:
    def test_empty_placeholder(self):
        html = render_dashboard([])
        assert "No Tracking Logs Yet" in html
        assert 'class="log-entry"' not in html
        assert '<span class="stat-number" id="totalCount">0</span>' in html

    def test_one_block_per_record_and_count(self):
        html = render_dashboard([pixel("a"), pixel("b"), pixel("c")])
        assert html.count('class="log-entry"') == 3
        assert '<span class="stat-number" id="totalCount">3</span>' in html
        assert "No Tracking Logs Yet" not in html

    def test_optional_blocks(self):
        bare = render_dashboard([pixel("a")])
        assert "<strong>Action:</strong>" not in bare
        assert "<strong>Section:</strong>" not in bare
        assert "<strong>Referer:</strong>" not in bare
        assert "<pre>" not in bare

        full = render_dashboard([
            pixel("a", action="open", section="work", referer="https://ref.example/"),
            LogRecord(kind=LogKind.SCRIPT_EVENT, timestamp="t", body={"k": "v"}),
        ])
        assert '<span class="action-tag">open</span>' in full
        assert '<span class="section-tag">work</span>' in full
        assert "<strong>Referer:</strong> https://ref.example/" in full
        assert "<pre>{\n  &#34;k&#34;: &#34;v&#34;\n}</pre>" in full

    def test_kind_labels(self):
        html = render_dashboard([pixel("a"), LogRecord(kind=LogKind.SCRIPT_EVENT, timestamp="t", body={})])
        assert '<span class="log-type type-pixel">PIXEL</span>' in html
        assert '<span class="log-type type-js">JS</span>' in html

    def test_missing_session_shows_placeholder(self):
        html = render_dashboard([LogRecord(kind=LogKind.SCRIPT_EVENT, timestamp="t", body={})])
        assert '<span class="session-id">N/A</span>' in html

    def test_contains_filter_script(self):
        html = render_dashboard([pixel("a")])
        assert 'id="searchInput"' in html
        assert "searchableText.includes(searchTerm)" in html


class TestSearchFilter:
    def test_case_insensitive_session_match(self):
        html = render_dashboard([pixel("abc123"), pixel("zzz")])
        for query in ("ABC", "abc", "  aBc  "):
            assert len(matches(html, query)) == 1

    def test_no_match(self):
        html = render_dashboard([pixel("abc123"), pixel("zzz")])
        assert matches(html, "definitely-not-present") == []

    def test_body_is_searchable(self):
        record = LogRecord(kind=LogKind.SCRIPT_EVENT, timestamp="t", body={"event": "Checkout"})
        assert len(matches(render_dashboard([record]), "checkout")) == 1


class TestEscaping:
    def test_script_session_is_escaped_in_searchable(self):
        html = render_dashboard([pixel("<script>alert(1)</script>")])
        [attr] = searchable_attrs(html)
        assert "<script>" not in attr
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in attr

    def test_script_never_rendered_raw(self):
        html = render_dashboard([
            pixel("<script>alert(1)</script>", section="<b>x</b>", action="\"'><img src=x>"),
            LogRecord(kind=LogKind.SCRIPT_EVENT, timestamp="t", body={"x": "</pre><script>alert(2)</script>"}),
        ])
        assert "<script>alert" not in html
        assert "<img src=x>" not in html
        assert "<b>x</b>" not in html

    def test_quotes_and_ampersands(self):
        html = render_dashboard([pixel("a\"b'c&d")])
        [attr] = searchable_attrs(html)
        assert "a&#34;b&#39;c&amp;d" in attr
