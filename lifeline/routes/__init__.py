# SPDX-License-Identifier: Apache-2.0

"""HTTP routes."""

from .requests import requests_bp

__all__ = ["requests_bp"]
