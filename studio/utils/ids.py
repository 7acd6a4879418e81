"""Identifier utilities."""

from __future__ import annotations

import uuid


def generate_screen_id() -> str:
  """Return a new generation screen identifier."""
  return str(uuid.uuid4())


def generate_request_id() -> str:
  """Return a new HTTP request identifier."""
  return uuid.uuid4().hex
