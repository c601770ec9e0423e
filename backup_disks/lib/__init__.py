"""Backup disk library modules.

This package contains the manager, the storage backends, the built-in
constructors and their configuration, logging and error utilities.
"""
