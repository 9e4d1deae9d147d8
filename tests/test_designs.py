import io
import json
import threading
import urllib.error

import cv2
import numpy as np
import pytest

from arinails_tryon import designs as designs_mod
from arinails_tryon.designs import (
    DesignSelection,
    DesignsClient,
    designs_from_directory,
    load_design_image,
    resolve_image_url,
)
from arinails_tryon.errors import DesignLoadError, DesignsApiError
from arinails_tryon.types import Design


def _design(i):
    return Design(id=i, title=f"Design {i}", image_url=f"/uploads/disenos/{i}.png")


def _image(value=1):
    return np.full((4, 4, 4), value, dtype=np.uint8)


# --- parsing ---------------------------------------------------------------


def test_design_from_api_payload():
    d = Design.from_api(
        {
            "id": 7,
            "titulo": "Floral Primavera",
            "imagenUrl": "/uploads/disenos/abc.png",
            "descripcion": "Flores rosas",
            "empleadoIdCreador": 3,
            "nombreEmpleado": "Ana",
            "fechaCreacion": "2025-03-01T10:00:00.000Z",
            "estaActivo": True,
        }
    )

    assert d.id == 7
    assert d.title == "Floral Primavera"
    assert d.image_url == "/uploads/disenos/abc.png"
    assert d.author_id == 3
    assert d.created_at.year == 2025
    assert d.active


def test_design_from_api_minimal():
    d = Design.from_api({"id": "2", "imagenUrl": "x.png", "descripcion": ""})

    assert d.id == 2
    assert d.description is None
    assert d.created_at is None


@pytest.mark.parametrize(
    "image_url,expected",
    [
        ("/uploads/a.png", "http://api:3000/uploads/a.png"),
        ("/uploads/disenos/x.png", "http://api:3000/uploads/disenos/x.png"),
        ("uploads/a.png", "http://api:3000/uploads/a.png"),
        ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
    ],
)
def test_resolve_image_url(image_url, expected):
    assert resolve_image_url("http://api:3000/", image_url) == expected


# --- loading ---------------------------------------------------------------


def test_load_design_image_keeps_alpha(tmp_path):
    path = tmp_path / "nail.png"
    img = np.zeros((10, 6, 4), dtype=np.uint8)
    img[:, :, 3] = 128
    cv2.imwrite(str(path), img)

    loaded = load_design_image(str(path))

    assert loaded.shape == (10, 6, 4)
    assert (loaded[:, :, 3] == 128).all()


def test_load_design_image_adds_alpha_to_jpeg(tmp_path):
    path = tmp_path / "nail.jpg"
    cv2.imwrite(str(path), np.zeros((8, 8, 3), dtype=np.uint8))

    assert load_design_image(str(path)).shape == (8, 8, 4)


def test_load_design_image_errors(tmp_path):
    with pytest.raises(DesignLoadError):
        load_design_image(str(tmp_path / "missing.png"))

    garbage = tmp_path / "garbage.png"
    garbage.write_bytes(b"not an image")
    with pytest.raises(DesignLoadError):
        load_design_image(str(garbage))


def test_designs_from_directory(tmp_path):
    for name in ("b_french.png", "a-glitter.jpg", "notes.txt"):
        (tmp_path / name).write_bytes(b"")

    found = designs_from_directory(str(tmp_path))

    assert [d.title for d in found] == ["A Glitter", "B French"]
    assert [d.id for d in found] == [1, 2]

    with pytest.raises(DesignLoadError):
        designs_from_directory(str(tmp_path / "nope"))


# --- API client --------------------------------------------------------------


class _Response(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def test_list_active_unwraps_envelope(monkeypatch):
    body = {
        "data": [
            {"id": 1, "titulo": "Uno", "imagenUrl": "/uploads/1.png", "estaActivo": True},
            {"id": 2, "titulo": "Dos", "imagenUrl": "/uploads/2.png", "estaActivo": False},
            {"titulo": "broken"},
        ],
        "message": "ok",
        "isValid": True,
    }
    seen = {}

    def fake_urlopen(req, context=None, timeout=None):
        seen["url"] = req.full_url
        return _Response(json.dumps(body).encode("utf-8"))

    monkeypatch.setattr(designs_mod.urllib.request, "urlopen", fake_urlopen)

    result = DesignsClient("http://api:3000/").list_active()

    assert seen["url"] == "http://api:3000/disenos/active"
    assert [d.id for d in result] == [1]
    assert result[0].image_url == "http://api:3000/uploads/1.png"


def test_listed_design_image_is_fetched_from_api(monkeypatch):
    ok, png = cv2.imencode(".png", np.zeros((6, 4, 4), dtype=np.uint8))
    assert ok
    body = {"data": [{"id": 7, "titulo": "Siete", "imagenUrl": "/uploads/disenos/x.png", "estaActivo": True}]}
    requested = []

    def fake_urlopen(req, context=None, timeout=None):
        url = req if isinstance(req, str) else req.full_url
        requested.append(url)
        if url.endswith("/disenos/active"):
            return _Response(json.dumps(body).encode("utf-8"))
        return _Response(png.tobytes())

    monkeypatch.setattr(designs_mod.urllib.request, "urlopen", fake_urlopen)

    (design,) = DesignsClient("http://api:3000").list_active()
    image = load_design_image(design.image_url)

    assert requested[-1] == "http://api:3000/uploads/disenos/x.png"
    assert image.shape == (6, 4, 4)


def test_list_active_network_error(monkeypatch):
    def fake_urlopen(req, context=None, timeout=None):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(designs_mod.urllib.request, "urlopen", fake_urlopen)

    with pytest.raises(DesignsApiError):
        DesignsClient("http://api:3000").list_active()


def test_list_active_bad_json(monkeypatch):
    monkeypatch.setattr(designs_mod.urllib.request, "urlopen", lambda req, context=None, timeout=None: _Response(b"<html>"))

    with pytest.raises(DesignsApiError):
        DesignsClient("http://api:3000").list_active()


# --- selection state -----------------------------------------------------------


def test_first_design_is_auto_selected_and_usable_after_load():
    with DesignSelection(loader=lambda url: _image()) as selection:
        assert not selection.ready
        selection.set_designs([_design(1), _design(2)])

        assert selection.selected == _design(1)
        assert selection.wait(timeout=5)
        assert selection.image is not None


def test_empty_list_selects_nothing():
    with DesignSelection(loader=lambda url: _image()) as selection:
        selection.set_designs([])

        assert selection.selected is None
        assert not selection.poll()


def test_existing_selection_is_kept():
    with DesignSelection(loader=lambda url: _image()) as selection:
        selection.select(_design(5))
        selection.set_designs([_design(1), _design(5)])

        assert selection.selected == _design(5)


def test_image_is_unusable_until_polled():
    release = threading.Event()

    def slow_loader(url):
        release.wait(5)
        return _image()

    with DesignSelection(loader=slow_loader) as selection:
        selection.select(_design(1))
        assert not selection.poll()
        assert selection.image is None

        release.set()
        assert selection.wait(timeout=5)


def test_superseded_load_is_discarded():
    release = threading.Event()

    def loader(url):
        if url.endswith("1.png"):
            release.wait(5)
            return _image(1)
        return _image(2)

    with DesignSelection(loader=loader) as selection:
        selection.select(_design(1))
        selection.select(_design(2))
        release.set()

        assert selection.wait(timeout=5)
        assert selection.selected == _design(2)
        assert int(selection.image[0, 0, 0]) == 2


def test_failed_load_leaves_design_unusable():
    def loader(url):
        raise DesignLoadError("cannot decode")

    with DesignSelection(loader=loader) as selection:
        selection.set_designs([_design(1)])

        assert not selection.wait(timeout=5)
        assert isinstance(selection.last_error, DesignLoadError)


def test_next_and_previous_wrap_around():
    with DesignSelection(loader=lambda url: _image()) as selection:
        selection.set_designs([_design(1), _design(2), _design(3)])

        selection.select_next()
        assert selection.selected.id == 2
        selection.select_previous()
        selection.select_previous()
        assert selection.selected.id == 3
        selection.select_next()
        assert selection.selected.id == 1
