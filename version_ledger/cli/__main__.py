# version_ledger/cli/__main__.py
from version_ledger.cli.main import app

app()
