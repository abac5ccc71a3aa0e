# sfa_portal/core/reconciliation.py
"""
Read-only consistency report across the credential store and the two
member collections. Used after a partially failed account mutation.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sfa_portal.models.credential import AuthCredential
from sfa_portal.models.member import Member, MemberByUid

logger = logging.getLogger(__name__)


@dataclass
class EmailMismatch:
    uid: str
    sfa_id: str
    credential_email: Optional[str] = None
    profile_email: Optional[str] = None
    mirror_email: Optional[str] = None


@dataclass
class AccountDrift:
    credentials_without_profile: List[str] = field(default_factory=list)  # uid
    profiles_without_credential: List[str] = field(default_factory=list)  # sfa_id
    profiles_without_mirror: List[str] = field(default_factory=list)      # sfa_id
    mirrors_without_profile: List[str] = field(default_factory=list)      # uid
    email_mismatches: List[EmailMismatch] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (
            self.credentials_without_profile
            or self.profiles_without_credential
            or self.profiles_without_mirror
            or self.mirrors_without_profile
            or self.email_mismatches
        )


async def find_account_drift() -> AccountDrift:
    credentials: Dict[str, AuthCredential] = {c.id: c for c in await AuthCredential.find_all().to_list()}
    profiles: Dict[str, Member] = {m.uid: m for m in await Member.find_all().to_list()}
    mirrors: Dict[str, MemberByUid] = {m.id: m for m in await MemberByUid.find_all().to_list()}

    drift = AccountDrift()
    drift.credentials_without_profile = sorted(uid for uid in credentials if uid not in profiles)
    drift.mirrors_without_profile = sorted(uid for uid in mirrors if uid not in profiles)

    for uid, profile in sorted(profiles.items(), key=lambda item: item[1].id):
        credential = credentials.get(uid)
        mirror = mirrors.get(uid)
        if credential is None:
            drift.profiles_without_credential.append(profile.id)
        if mirror is None:
            drift.profiles_without_mirror.append(profile.id)

        emails = {profile.email}
        if credential is not None:
            emails.add(credential.email)
        if mirror is not None:
            emails.add(mirror.email)
        if len(emails) > 1:
            drift.email_mismatches.append(EmailMismatch(
                uid=uid,
                sfa_id=profile.id,
                credential_email=credential.email if credential else None,
                profile_email=profile.email,
                mirror_email=mirror.email if mirror else None,
            ))

    if drift.is_clean:
        logger.info("Account reconciliation: no drift found.")
    else:
        logger.warning(f"Account reconciliation found drift: {drift}")
    return drift
