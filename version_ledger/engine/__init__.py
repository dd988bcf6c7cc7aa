# version_ledger/engine/__init__.py
