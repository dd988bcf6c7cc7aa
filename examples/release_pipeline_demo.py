# examples/release_pipeline_demo.py
# Run with: python examples/release_pipeline_demo.py
#
# Simulates two CI jobs recording releases and test results into one ledger.
# Uses the in-memory store; point LedgerSession at "github://<owner>/<repo>"
# (with GITHUB_TOKEN set) to run against a real ledger repository.

import logging

from version_ledger import LedgerSession
from version_ledger.core.errors import ConflictError
from version_ledger.storage import MemoryStore

logging.basicConfig(level=logging.WARNING, format="[ledger] %(levelname)s %(message)s")


def main():
    store = MemoryStore()

    release_job = LedgerSession(store).fetch(create_if_missing=True)
    release_job.add_component("api", "API")
    release_job.add_component("web-ui", "Web UI")
    release_job.add_setup("full-stack", "Full stack", ["web-ui", "api"])

    # the version for an unknown component auto-creates it (with a warning)
    release_job.add_version("api", "1.0.0")
    release_job.add_version("web-ui", "0.4.0")
    release_job.add_version("auth-service", "0.1.0")

    # a second job loads the same revision, then the first one writes again
    test_job = LedgerSession(store, max_attempts=1).fetch()
    release_job.add_version("api", "1.1.0")

    latest = test_job.latest_versions("full-stack")
    versions = {cid: v.tag for cid, v in latest.items() if v}
    try:
        test_job.add_test("full-stack", "passed", versions)
    except ConflictError as e:
        print(f"Test job lost the race: {e}")
        test_job.fetch()
        versions = {cid: v.tag for cid, v in test_job.latest_versions("full-stack").items() if v}
        test_job.add_test("full-stack", "passed", versions, description="re-run after conflict")

    print("\nLatest versions:")
    for cid, v in test_job.latest_versions().items():
        print(f"  {cid:14} {v.tag if v else '-'}")

    print("\nTest results for full-stack:")
    for t in test_job.setup_tests("full-stack"):
        pairs = ", ".join(f"{cid}@{tag}" for cid, tag in sorted(t.component_version_map.items()))
        print(f"  {t.status:8} {pairs}  {t.description or ''}")

    print(f"\nStore history: {store.messages}")


if __name__ == "__main__":
    main()
