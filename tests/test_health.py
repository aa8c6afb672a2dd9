def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root(client) -> None:
    body = client.get("/").json()
    assert body["name"] == "Yakka Chat"
    assert body["docs"] == "/docs"
