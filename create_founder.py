# create_founder.py
import asyncio
import sys
from getpass import getpass

from loguru import logger

try:
    from sfa_portal.core.config import setup_logging
    from sfa_portal.core.errors import AlreadyInitialized, PortalError
    from sfa_portal.core.registration import provision_member
    from sfa_portal.core.sfa_id import current_counter_value, initialize_counter
    from sfa_portal.db.database import init_db
    from sfa_portal.models.enum import MemberRole
    from sfa_portal.models.member import Member
except ImportError as e:
    print(f"Error importing application modules: {e}")
    print("Pastikan Anda menjalankan skrip dari root direktori proyek dan venv aktif.")
    sys.exit(1)


def _ask(prompt: str, required: bool = True) -> str:
    while True:
        value = input(prompt).strip()
        if value or not required:
            return value
        print("Value cannot be empty.")


async def ensure_counter() -> None:
    current = await current_counter_value()
    if current is not None:
        print(f"SFA counter already initialized (current={current}).")
        return
    raw = _ask("SFA counter not initialized. Last SFA number already issued [0]: ", required=False) or "0"
    try:
        await initialize_counter(int(raw), initialized_by="create_founder")
        print(f"SFA counter initialized at {raw}.")
    except AlreadyInitialized:
        print("SFA counter was initialized concurrently; continuing.")


async def create_initial_founder():
    """Skrip untuk membuat akun founder pertama."""
    print("--- Create Initial Founder ---")
    try:
        await init_db()
    except Exception as e:
        print(f"Error connecting to database: {e}")
        return

    await ensure_counter()

    email = _ask("Enter founder email: ")
    while True:
        password = getpass("Enter founder password: ")
        if password and password == getpass("Confirm founder password: "):
            break
        print("Passwords empty or do not match. Please try again.")

    data = Member.Register(
        email=email,
        password=password,
        full_name=_ask("Enter full name: "),
        cms_id=_ask("Enter CMS ID: "),
        lobby_id=_ask("Enter lobby: "),
        phone_number=_ask("Enter phone number (10 digits): "),
        emergency_number=_ask("Enter emergency number (optional): ", required=False) or None,
    )
    try:
        member = await provision_member(data, role=MemberRole.FOUNDER)
    except PortalError as e:
        print(f"Error creating founder: {e.message}")
        return
    print(f"Founder {member.id} ({member.email}) created successfully!")


if __name__ == "__main__":
    setup_logging()
    logger.info("Starting founder creation script...")
    asyncio.run(create_initial_founder())
    print("Script finished.")
