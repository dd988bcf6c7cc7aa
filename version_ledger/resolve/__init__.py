# version_ledger/resolve/__init__.py
