# SPDX-License-Identifier: MPL-2.0
"""Setuptools shim for vault-crypto.

All metadata lives in pyproject.toml; this file only exists for tooling that
still invokes ``setup.py`` directly.
"""
from setuptools import setup

if __name__ == "__main__":
    setup()
