# reconcile_accounts.py
"""Prints credential/profile/mirror drift. Read-only; fixes are applied by hand."""
import asyncio
import sys

from loguru import logger

from sfa_portal.core.config import setup_logging
from sfa_portal.core.reconciliation import find_account_drift
from sfa_portal.db.database import init_db


def _section(title: str, items) -> None:
    print(f"\n{title} ({len(items)})")
    for item in items:
        print(f"  - {item}")


async def main() -> int:
    await init_db()
    drift = await find_account_drift()
    if drift.is_clean:
        print("No drift between credentials, profiles and mirrors.")
        return 0

    _section("Credentials without profile (uid)", drift.credentials_without_profile)
    _section("Profiles without credential (sfa_id)", drift.profiles_without_credential)
    _section("Profiles without mirror (sfa_id)", drift.profiles_without_mirror)
    _section("Mirrors without profile (uid)", drift.mirrors_without_profile)
    _section(
        "Email mismatches",
        [
            f"{m.sfa_id} uid={m.uid} credential={m.credential_email} profile={m.profile_email} mirror={m.mirror_email}"
            for m in drift.email_mismatches
        ],
    )
    return 1


if __name__ == "__main__":
    setup_logging()
    logger.info("Running account reconciliation report...")
    sys.exit(asyncio.run(main()))
