# version_ledger/core/__init__.py
