def test_common_icon_routes_never_404(client) -> None:
    for path in ("/favicon.ico", "/apple-touch-icon.png", "/apple-touch-icon-precomposed.png"):
        response = client.get(path)
        assert response.status_code in {200, 204}


def test_pages_include_icon_links(client) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert 'rel="icon"' in response.text
    assert 'href="/favicon.ico"' in response.text
    assert 'rel="apple-touch-icon"' in response.text


def test_static_pages_render(client) -> None:
    assert client.get("/terms").status_code == 200
    assert client.get("/privacy").status_code == 200
    assert client.get("/static/app.js").status_code == 200
