from __future__ import annotations

import gzip

import httpx
import pytest

from vocabulary_center.app.downloads import AssetStreamer, download_filename
from vocabulary_center.errors import Forbidden, NotFound, UpstreamFailure

PDF_BODY = b"%PDF-1.7 " + b"vocabulary " * 400


def _streamer(handler) -> AssetStreamer:
    client = httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True, max_redirects=5)
    return AssetStreamer(client=client)


def test_gate_rejects_unknown_item(download_gate, alice):
    with pytest.raises(NotFound):
        download_gate.authorize_retrieval(alice.id, "missing")


def test_gate_rejects_identity_without_entitlement(download_gate, alice, spanish_guide):
    with pytest.raises(Forbidden):
        download_gate.authorize_retrieval(alice.id, spanish_guide.id)


def test_gate_returns_reference_for_entitled_identity(download_gate, ledger, alice, spanish_guide):
    ledger.grant_item(alice.id, spanish_guide.id)

    reference = download_gate.authorize_retrieval(alice.id, spanish_guide.id)

    assert reference.url == spanish_guide.pdf_file_url
    assert reference.filename == "Spanish_Vocabulary_Essentials.pdf"


def test_entitlement_is_per_identity(download_gate, ledger, alice, bob, spanish_guide):
    ledger.grant_item(alice.id, spanish_guide.id)

    with pytest.raises(Forbidden):
        download_gate.authorize_retrieval(bob.id, spanish_guide.id)


@pytest.mark.parametrize(
    "title,expected",
    [
        ("Japanese Hiragana & Katakana", "Japanese_Hiragana___Katakana.pdf"),
        ("Español básico", "Espa_ol_b_sico.pdf"),
    ],
)
def test_download_filename_replaces_non_alphanumerics(title, expected):
    assert download_filename(title) == expected


def test_streamer_follows_redirects():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/raw/spanish.pdf":
            return httpx.Response(302, headers={"Location": "https://edge.example.com/files/spanish.pdf"})
        return httpx.Response(200, content=b"%PDF-1.7 body", headers={"Content-Length": "13"})

    asset = _streamer(handler).open("https://cdn.example.com/raw/spanish.pdf")

    assert asset.content_length == "13"
    assert b"".join(asset.chunks) == b"%PDF-1.7 body"


def test_streamer_rejects_non_200():
    with pytest.raises(UpstreamFailure) as excinfo:
        _streamer(lambda request: httpx.Response(404)).open("https://cdn.example.com/raw/missing.pdf")

    assert excinfo.value.detail == {"status": 404}


def test_streamer_gives_up_after_redirect_loop():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": str(request.url)})

    with pytest.raises(UpstreamFailure):
        _streamer(handler).open("https://cdn.example.com/raw/loop.pdf")


def test_streamer_asks_for_unencoded_bytes():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["accept_encoding"] = request.headers.get("Accept-Encoding")
        return httpx.Response(200, content=PDF_BODY)

    asset = _streamer(handler).open("https://cdn.example.com/raw/spanish.pdf")

    assert seen["accept_encoding"] == "identity"
    assert asset.content_length == str(len(PDF_BODY))


def test_streamer_drops_length_of_compressed_upstream():
    compressed = gzip.compress(PDF_BODY)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=compressed, headers={"Content-Encoding": "gzip"})

    asset = _streamer(handler).open("https://cdn.example.com/raw/spanish.pdf")

    assert asset.content_length is None
    assert b"".join(asset.chunks) == PDF_BODY
