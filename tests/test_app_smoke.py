from __future__ import annotations


def test_unknown_api_route_is_json_404(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "Not found"}


def test_spa_fallback_serves_index(make_client, sandbox_env):
    dist = sandbox_env / "client"
    (dist / "static").mkdir(parents=True)
    (dist / "index.html").write_text("<html>issues</html>", encoding="utf-8")
    (dist / "static" / "app.js").write_text("console.log(1)", encoding="utf-8")

    client = make_client()
    assert client.get("/").text == "<html>issues</html>"
    assert client.get("/some/deep/link").text == "<html>issues</html>"
    assert client.get("/static/app.js").text == "console.log(1)"
    # API paths never fall through to the shell.
    for path in ("/api", "/api/", "/api/unknown"):
        r = client.get(path)
        assert r.status_code == 404
        assert r.json() == {"error": "Not found"}


def test_no_client_build_means_404(make_client):
    r = make_client().get("/")
    assert r.status_code == 404
    assert r.json() == {"error": "Not found"}


def test_storage_failure_is_generic_500(make_client, monkeypatch):
    from persistence.repositories import AsyncProjectRepository

    client = make_client()
    client.post("/api/auth/register", json={"email": "alice@example.com", "password": "secret1"})

    async def _broken_read(self, user_id):
        raise OSError("disk on fire at /srv/secret/path")

    monkeypatch.setattr(AsyncProjectRepository, "read", _broken_read)
    r = client.get("/api/projects")
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}
    assert "/srv/secret" not in r.text


def test_cors_allows_configured_origin_with_credentials(make_client):
    r = make_client().options(
        "/api/projects",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "PUT"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert r.headers["access-control-allow-credentials"] == "true"


def test_corrupt_project_file_is_generic_500(make_client, sandbox_env, monkeypatch):
    import dependencies

    monkeypatch.setenv("STORAGE_BACKEND", "file")
    dependencies.reset_dependencies()

    client = make_client()
    client.post("/api/auth/register", json={"email": "alice@example.com", "password": "secret1"})
    (sandbox_env / "data" / "projects.json").write_text("{not json", encoding="utf-8")

    r = client.get("/api/projects")
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}
    # The broken file is left alone for inspection.
    assert (sandbox_env / "data" / "projects.json").read_text(encoding="utf-8") == "{not json"
