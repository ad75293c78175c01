"""Tests for the Gemini image edit wrapper."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from ai_edit import API_KEY_ENV, edit_image
from errors import InvalidInput, ResourceUnavailable


def response_with(*parts):
  return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


def text_part(text):
  return SimpleNamespace(text=text, inline_data=None)


def image_part(data):
  return SimpleNamespace(inline_data=SimpleNamespace(mime_type="image/png", data=data))


@pytest.fixture
def genai():
  with patch("ai_edit.genai") as mock_genai:
    yield mock_genai


def set_response(genai, response):
  model = MagicMock()
  model.generate_content.return_value = response
  genai.GenerativeModel.return_value = model
  return model


class TestEditImage:
  def test_returns_first_image_part(self, genai):
    model = set_response(genai, response_with(
      text_part("here you go"), image_part(b"first"), image_part(b"second"),
    ))
    assert edit_image(b"png", "image/png", "make it pop", api_key="k") == b"first"
    genai.configure.assert_called_once_with(api_key="k")
    contents = model.generate_content.call_args[0][0]
    assert contents[0] == {"mime_type": "image/png", "data": b"png"}
    assert contents[1] == "make it pop"

  def test_instruction_is_trimmed(self, genai):
    model = set_response(genai, response_with(image_part(b"x")))
    edit_image(b"png", "image/png", "  add fire  ", api_key="k")
    assert model.generate_content.call_args[0][0][1] == "add fire"

  def test_model_name_passed_through(self, genai):
    set_response(genai, response_with(image_part(b"x")))
    edit_image(b"png", "image/png", "x", api_key="k", model_name="custom-model")
    genai.GenerativeModel.assert_called_once_with("custom-model")

  def test_api_key_from_environment(self, genai, monkeypatch):
    monkeypatch.setenv(API_KEY_ENV, "env-key")
    set_response(genai, response_with(image_part(b"x")))
    edit_image(b"png", "image/png", "x")
    genai.configure.assert_called_once_with(api_key="env-key")

  def test_missing_key(self, genai, monkeypatch):
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    with pytest.raises(ResourceUnavailable, match="API key"):
      edit_image(b"png", "image/png", "x")
    genai.GenerativeModel.assert_not_called()

  @pytest.mark.parametrize("instruction", ["", "   "])
  def test_empty_instruction(self, genai, instruction):
    with pytest.raises(InvalidInput):
      edit_image(b"png", "image/png", instruction, api_key="k")

  def test_sdk_error_becomes_resource_unavailable(self, genai):
    model = set_response(genai, None)
    model.generate_content.side_effect = RuntimeError("quota exceeded")
    with pytest.raises(ResourceUnavailable, match="quota exceeded"):
      edit_image(b"png", "image/png", "x", api_key="k")

  def test_text_only_response(self, genai):
    set_response(genai, response_with(text_part("I can't do that")))
    with pytest.raises(ResourceUnavailable, match="no image data"):
      edit_image(b"png", "image/png", "x", api_key="k")

  def test_no_candidates(self, genai):
    set_response(genai, SimpleNamespace(candidates=[]))
    with pytest.raises(ResourceUnavailable):
      edit_image(b"png", "image/png", "x", api_key="k")
