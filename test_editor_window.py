"""Tests for the preview canvas and editor window bindings."""

import asyncio
import io
import os

import pytest
from PIL import Image
from PySide6.QtCore import QEvent, QPointF, Qt
from PySide6.QtGui import QMouseEvent
from PySide6.QtWidgets import QApplication

from bitmap import Bitmap
from drag import DragState
from editor_window import EditorWindow, PreviewCanvas
from session import EditorSession

app = QApplication.instance() or QApplication([])


def fake_measure(text, spec):
  return len(text) * spec.pixel_size * 0.5


def png_bytes(size=(800, 400)):
  buf = io.BytesIO()
  Image.new("RGB", size, (40, 40, 40)).save(buf, "PNG")
  return buf.getvalue()


def make_session(bitmap=True, fetcher=None):
  async def default_fetcher(video_id):
    return png_bytes((320, 180))

  session = EditorSession(
    fetcher=fetcher or default_fetcher,
    image_editor=lambda data, mime, instr: png_bytes((64, 64)),
    measure_text=fake_measure,
  )
  if bitmap:
    session.load_bitmap(Bitmap(png_bytes()))
  return session


def mouse(kind, x, y, button=Qt.MouseButton.LeftButton):
  pos = QPointF(x, y)
  buttons = Qt.MouseButton.NoButton if kind == QEvent.Type.MouseButtonRelease else button
  return QMouseEvent(kind, pos, pos, button, buttons, Qt.KeyboardModifier.NoModifier)


@pytest.fixture
def loop():
  loop = asyncio.new_event_loop()
  yield loop
  loop.close()


def finish(loop, future):
  loop.run_until_complete(asyncio.wait([future]))
  loop.run_until_complete(asyncio.sleep(0))


def edit_controls(window):
  return [
    window._export_btn, window._ai_btn, window._prompt_edit, window._reset_btn,
    window._text_edit, window._add_btn, window._size_spin, window._font_combo,
    window._color_btn, window._overlay_list, *window._sliders.values(),
  ]


# -- Preview canvas -----------------------------------------------------------

class TestPreviewCanvas:
  def test_image_fits_with_aspect_ratio(self):
    session = make_session(bitmap=False)
    canvas = PreviewCanvas(session)
    canvas.resize(400, 400)
    session.load_bitmap(Bitmap(png_bytes((800, 400))))
    rect = canvas.image_rect()
    assert (rect.x(), rect.y(), rect.width(), rect.height()) == (0, 100, 400, 200)

  def test_no_image_gives_empty_rect(self):
    canvas = PreviewCanvas(make_session(bitmap=False))
    canvas.resize(400, 400)
    assert canvas.image_rect().isEmpty()

  def test_mouse_drag_moves_overlay(self):
    session = make_session()
    canvas = PreviewCanvas(session)
    canvas.resize(400, 400)
    session.reset()
    oid = session.add_text("Hi")
    session.select(None)

    # Overlay anchor (400, 200) in the bitmap shows at (200, 200)
    canvas.mousePressEvent(mouse(QEvent.Type.MouseButtonPress, 200, 200))
    assert session.selected_id == oid
    assert session.drag_state == DragState.DRAGGING

    canvas.mouseMoveEvent(mouse(QEvent.Type.MouseMove, 220, 210))
    ov = session.overlays.get(oid)
    assert ov.x == pytest.approx(55.0)
    assert ov.y == pytest.approx(55.0)

    canvas.mouseReleaseEvent(mouse(QEvent.Type.MouseButtonRelease, 220, 210))
    assert session.drag_state == DragState.SELECTED

  def test_right_button_ignored(self):
    session = make_session()
    canvas = PreviewCanvas(session)
    canvas.resize(400, 400)
    session.reset()
    session.add_text("Hi")
    session.select(None)
    canvas.mousePressEvent(
      mouse(QEvent.Type.MouseButtonPress, 200, 200, Qt.MouseButton.RightButton))
    assert session.selected_id is None


# -- Editor window ------------------------------------------------------------

class TestEditorWindow:
  def make_window(self, loop, tmp_path, session=None, **config):
    cfg = {"save_folder": str(tmp_path), "format": "png", "jpeg_quality": 90,
           "filename_prefix": "thumb", "filename_suffix": "%Y%m%d_%H%M%S"}
    cfg.update(config)
    saved = []
    window = EditorWindow(session or make_session(), cfg, loop, on_saved=saved.append)
    return window, saved

  def test_controls_disabled_without_bitmap(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path, make_session(bitmap=False))
    assert window._fetch_btn.isEnabled()
    assert not window._export_btn.isEnabled()
    assert not window._ai_btn.isEnabled()
    for widget in edit_controls(window):
      assert not widget.isEnabled()

  def test_controls_enabled_with_bitmap(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    assert window._export_btn.isEnabled()
    assert window._ai_btn.isEnabled()
    assert not window._delete_btn.isEnabled()

  def test_add_text_from_widgets(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    window._text_edit.setText("Big News")
    window._add_btn.click()
    assert [o.text for o in window._session.overlay_list()] == ["Big News"]
    assert window._text_edit.text() == ""
    assert window._overlay_list.count() == 1
    assert not window._props.isHidden()
    assert window._delete_btn.isEnabled()

  def test_property_widgets_edit_selection(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    oid = window._session.add_text("Hi")
    window._size_spin.setValue(96)
    window._font_combo.textActivated.emit("Impact")
    ov = window._session.overlays.get(oid)
    assert ov.font_size == 96
    assert ov.font_family == "Impact"

  def test_typed_font_applied_when_editing_finishes(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    oid = window._session.add_text("Hi")
    window._font_combo.lineEdit().setText("Verd")
    assert window._session.overlays.get(oid).font_family == "Share Tech Mono"
    window._font_combo.lineEdit().setText("Verdana")
    window._font_combo.lineEdit().editingFinished.emit()
    assert window._session.overlays.get(oid).font_family == "Verdana"

  def test_blank_font_ignored(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    oid = window._session.add_text("Hi")
    window._font_combo.lineEdit().setText("")
    window._font_combo.lineEdit().editingFinished.emit()
    assert window._session.overlays.get(oid).font_family == "Share Tech Mono"
    assert window._error_label.text() == ""

  def test_edit_controls_disabled_while_fetching(self, loop, tmp_path):
    gate = asyncio.Event()

    async def fetcher(video_id):
      await gate.wait()
      return png_bytes((320, 180))

    window, _ = self.make_window(loop, tmp_path, make_session(fetcher=fetcher))
    window._session.add_text("Hi")
    window._url_edit.setText("https://youtu.be/dQw4w9WgXcQ")
    future = window._fetch()
    loop.run_until_complete(asyncio.sleep(0))

    assert window._session.busy
    assert not window._fetch_btn.isEnabled()
    assert not window._delete_btn.isEnabled()
    for widget in edit_controls(window):
      assert not widget.isEnabled()

    gate.set()
    finish(loop, future)
    assert not window._session.busy
    assert window._fetch_btn.isEnabled()
    for widget in edit_controls(window):
      assert widget.isEnabled()

  def test_slider_sets_adjustment(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    window._sliders["sepia"].setValue(40)
    assert window._session.adjustments.sepia == 40

  def test_reset_syncs_sliders(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    window._sliders["contrast"].setValue(150)
    window._reset_btn.click()
    assert window._sliders["contrast"].value() == 100

  def test_delete_selected(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    window._session.add_text("Gone")
    window._delete_btn.click()
    assert window._session.overlay_list() == ()
    assert window._overlay_list.count() == 0

  def test_export_saves_file(self, loop, tmp_path):
    window, saved = self.make_window(loop, tmp_path)
    finish(loop, window._export())
    assert len(saved) == 1
    assert os.path.exists(saved[0])
    assert Bitmap(open(saved[0], "rb").read()).size.width() == 800

  def test_fetch_error_shown(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    window._url_edit.setText("https://example.com/watch")
    finish(loop, window._fetch())
    assert window._error_label.text() == "Invalid YouTube URL"

  def test_fetch_loads_new_image(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    window._url_edit.setText("https://youtu.be/dQw4w9WgXcQ")
    finish(loop, window._fetch())
    assert window._error_label.text() == ""
    assert window._session.preview.size().width() == 320

  def test_ai_edit_clears_prompt(self, loop, tmp_path):
    window, _ = self.make_window(loop, tmp_path)
    window._prompt_edit.setText("add fire")
    finish(loop, window._ai_edit())
    assert window._prompt_edit.text() == ""
    assert window._session.preview.size().width() == 64
