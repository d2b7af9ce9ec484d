import re

from tracklog.store import list_all_keys

TOTAL = re.compile(r'id="totalCount">(\d+)<')
SESSIONS = re.compile(r'<span class="session-id">([^<]*)</span>')


class TestDashboardEndpoint:
    def test_empty(self, client):
        resp = client.get("/dashboard")
        assert resp.status_code == 200
        assert resp.mimetype == "text/html"
        assert b"No Tracking Logs Yet" in resp.data

    def test_count_matches_store_and_newest_first(self, client, store):
        for session in ("first", "second", "third", "fourth", "fifth"):
            client.get(f"/pixel?session={session}")
        client.post("/log", json={"event": "sixth"})

        html = client.get("/dashboard").get_data(as_text=True)
        assert int(TOTAL.search(html).group(1)) == len(list_all_keys(store)) == 6
        assert SESSIONS.findall(html) == ["N/A", "fifth", "fourth", "third", "second", "first"]

    def test_hostile_session_escaped(self, client):
        client.get("/pixel", query_string={"session": "<script>alert(1)</script>"})
        html = client.get("/dashboard").get_data(as_text=True)
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html

    def test_no_cors_headers(self, client):
        resp = client.get("/dashboard", headers={"Origin": "http://localhost"})
        assert "Access-Control-Allow-Origin" not in resp.headers

    def test_any_method_renders(self, client):
        resp = client.post("/dashboard")
        assert resp.status_code == 200
        assert b"Tracking Dashboard" in resp.data
