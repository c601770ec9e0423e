"""backup-disks test suite.

- unit/test_manager.py: resolution, caching, extension and single-flight
- unit/test_constructors.py: built-in s3/memory/wings constructors
- unit/test_storage_memory.py, unit/test_storage_s3.py: storage handles
- unit/test_config.py, unit/test_env.py, unit/test_errors.py, unit/test_logging.py
- unit/test_cli.py: python -m backup_disks
"""
