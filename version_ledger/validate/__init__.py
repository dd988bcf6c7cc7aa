# version_ledger/validate/__init__.py
