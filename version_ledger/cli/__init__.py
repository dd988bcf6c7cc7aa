# version_ledger/cli/__init__.py
