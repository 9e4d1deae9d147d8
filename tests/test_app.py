import numpy as np
import pytest

from arinails_tryon import app
from arinails_tryon.camera import VideoCaptureAdapter
from arinails_tryon.config import TryOnConfig
from arinails_tryon.designs import DesignSelection
from arinails_tryon.errors import ModelLoadError
from arinails_tryon.session import TryOnSession
from arinails_tryon.types import Design, ModelStatus

from fakes import FakeCapture, FakeProvider

DESIGNS = [Design(id=i, title=f"Design {i}", image_url=f"{i}.png") for i in (1, 2, 3)]


def _patch_loader(monkeypatch):
    monkeypatch.setattr(app, "DesignSelection", lambda: DesignSelection(loader=lambda url: np.zeros((2, 2, 4), np.uint8)))


def test_make_selection_honours_design_id(monkeypatch):
    _patch_loader(monkeypatch)

    with app.make_selection(TryOnConfig(design_id=2), DESIGNS) as selection:
        assert selection.selected.id == 2
        assert len(selection.designs) == 3


def test_make_selection_unknown_id_falls_back_to_first(monkeypatch):
    _patch_loader(monkeypatch)

    with app.make_selection(TryOnConfig(design_id=99), DESIGNS) as selection:
        assert selection.selected.id == 1


def test_load_designs_from_directory(tmp_path):
    (tmp_path / "french.png").write_bytes(b"")

    designs = app.load_designs(TryOnConfig(design_dir=str(tmp_path)))

    assert [d.title for d in designs] == ["French"]


def test_hud_lines(monkeypatch):
    _patch_loader(monkeypatch)

    with app.make_selection(TryOnConfig(), []) as empty:
        assert app.hud_lines(empty) == ["No designs available right now"]

    with app.make_selection(TryOnConfig(), DESIGNS) as selection:
        selection.wait(timeout=5)
        assert app.hud_lines(selection)[:2] == ["Design 1", "Show your hands to the camera"]


def _session(provider_factory):
    camera = VideoCaptureAdapter(capture_factory=lambda index: FakeCapture())
    return TryOnSession(camera, provider_factory, DesignSelection(loader=lambda url: np.zeros((2, 2, 4), np.uint8)))


def test_setup_screen_follows_status_signals():
    session = _session(lambda: FakeProvider([]))
    shown = []
    screen = app.SetupScreen(session, on_change=lambda s: shown.append((s.message, s.error)))

    session.start()
    session.stop()
    screen.close()
    session.selection.close()

    assert shown == [
        (app.SetupScreen.CAMERA_STARTING, False),
        (app.SetupScreen.MODEL_LOADING, False),
    ]


def test_setup_screen_shows_model_error():
    def failing():
        raise ModelLoadError("download failed")

    session = _session(failing)
    screen = app.SetupScreen(session)

    with pytest.raises(ModelLoadError):
        session.start()
    session.selection.close()

    assert screen.error
    assert screen.message == ModelLoadError.user_message
    assert screen.render().ndim == 3

    screen.close()
    session.model_status.set(ModelStatus.LOADING)
    assert screen.message == ModelLoadError.user_message
