# SPDX-License-Identifier: MPL-2.0
"""
vault-crypto - Main entry point for the CLI.

This module provides the command-line interface for the vault-crypto package.
"""

from vault_crypto.cli.main import cli

if __name__ == "__main__":
    cli()
