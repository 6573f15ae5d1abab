"""
Credential store.

The only place principals and role profiles are read from or written to
storage. Uniqueness of email, OAuth subject and role identifiers is enforced
by unique indexes in the underlying MetadataStorage, not by pre-checks.

`password_hash` is left out of every read unless the caller asks for it
with `with_secret=True`.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from c2c_portal.auth.capabilities import Role
from c2c_portal.auth.models import (
    PROFILE_COLLECTIONS,
    FacultyProfile,
    IndustryProfile,
    Principal,
    StudentProfile,
    parse_profile,
)
from c2c_portal.core.errors import DuplicateIdentityError, NotFoundError, ValidationFailedError
from c2c_portal.core.utils import generate_id, normalize_email, utc_now
from c2c_portal.storage.base import Collections, DuplicateKeyError, MetadataStorage

logger = logging.getLogger(__name__)

Profile = StudentProfile | FacultyProfile | IndustryProfile

PROFILE_MODELS: dict[Role, type[Profile]] = {
    Role.STUDENT: StudentProfile,
    Role.FACULTY: FacultyProfile,
    Role.INDUSTRY: IndustryProfile,
}

UNIQUE_FIELDS: dict[str, tuple[str, ...]] = {
    Collections.PRINCIPALS: ("email", "oauth_subject_id"),
    Collections.STUDENT_PROFILES: ("student_id",),
    Collections.FACULTY_PROFILES: ("employee_id",),
}

DUPLICATE_MESSAGES = {
    "email": "User with this email already exists",
    "oauth_subject_id": "This external account is already linked to another user",
}


def validation_errors(exc: ValidationError, prefix: str = "") -> list[dict[str, Any]]:
    """Flatten a pydantic ValidationError into the API's field error list."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"])
        errors.append({
            "field": f"{prefix}{field}" if prefix else field,
            "message": err["msg"],
        })
    return errors


def _duplicate_error(exc: DuplicateKeyError) -> DuplicateIdentityError:
    message = DUPLICATE_MESSAGES.get(
        exc.field,
        f"{exc.field} '{exc.value}' already exists. Please use another value.",
    )
    return DuplicateIdentityError(message, errors=[{"field": exc.field, "message": message}])


class CredentialStore:
    """Principal + role profile persistence."""

    def __init__(self, storage: MetadataStorage):
        self.storage = storage
        self._indexes_ready = False

    async def ensure_indexes(self) -> None:
        """Declare unique indexes. Idempotent; every write path calls it."""
        if self._indexes_ready:
            return
        for collection, fields in UNIQUE_FIELDS.items():
            for field in fields:
                await self.storage.create_index(collection, field, unique=True)
        self._indexes_ready = True

    # =========================================================================
    # Reads
    # =========================================================================

    @staticmethod
    def _to_principal(doc: dict[str, Any] | None, with_secret: bool) -> Principal | None:
        if doc is None:
            return None
        if not with_secret:
            doc.pop("password_hash", None)
        principal = Principal.model_validate(doc)
        principal._secret_loaded = with_secret
        return principal

    async def find_by_id(self, principal_id: str, with_secret: bool = False) -> Principal | None:
        doc = await self.storage.get(Collections.PRINCIPALS, principal_id)
        return self._to_principal(doc, with_secret)

    async def find_by_email(self, email: str, with_secret: bool = False) -> Principal | None:
        doc = await self.storage.find_one(Collections.PRINCIPALS, {"email": normalize_email(email)})
        return self._to_principal(doc, with_secret)

    async def find_by_oauth_subject(self, subject_id: str) -> Principal | None:
        doc = await self.storage.find_one(Collections.PRINCIPALS, {"oauth_subject_id": subject_id})
        return self._to_principal(doc, with_secret=False)

    async def find_by_token(self, field: str, token_hash: str) -> Principal | None:
        """Look up a principal by a hashed verification or reset token."""
        doc = await self.storage.find_one(Collections.PRINCIPALS, {field: token_hash})
        return self._to_principal(doc, with_secret=False)

    async def get(self, principal_id: str, with_secret: bool = False) -> Principal:
        principal = await self.find_by_id(principal_id, with_secret=with_secret)
        if principal is None:
            raise NotFoundError("User not found")
        return principal

    # =========================================================================
    # Writes
    # =========================================================================

    async def create(
        self,
        role: Role,
        base_fields: dict[str, Any],
        role_fields: dict[str, Any] | None = None,
    ) -> Principal:
        """
        Create a principal and its role profile as one unit.

        If the profile cannot be written the principal is removed again,
        so a failed registration never leaves half a user behind.
        """
        principal_id = generate_id("usr")
        fields = {**base_fields, "email": normalize_email(base_fields.get("email", ""))}

        try:
            principal = Principal(id=principal_id, role=role, **fields)
        except ValidationError as e:
            raise ValidationFailedError(errors=validation_errors(e))
        try:
            profile = PROFILE_MODELS[role](principal_id=principal_id, **(role_fields or {}))
        except ValidationError as e:
            raise ValidationFailedError(errors=validation_errors(e, prefix=f"{role.value}_data."))

        await self.ensure_indexes()

        try:
            await self.storage.insert(Collections.PRINCIPALS, principal_id, principal.model_dump())
        except DuplicateKeyError as e:
            raise _duplicate_error(e)

        try:
            await self.storage.insert(PROFILE_COLLECTIONS[role], principal_id, profile.model_dump())
        except Exception as e:
            await self.storage.delete(Collections.PRINCIPALS, principal_id)
            logger.info(f"Rolled back principal {principal_id}: profile write failed ({e})")
            if isinstance(e, DuplicateKeyError):
                raise _duplicate_error(e)
            raise

        principal._secret_loaded = True
        return principal

    async def save(self, principal: Principal) -> Principal:
        """
        Write the whole principal document.

        password_hash is only written when it was loaded or has just been
        set; saving a principal read without its secret keeps the stored hash.
        """
        await self.ensure_indexes()
        principal.updated_at = utc_now()
        exclude = None
        if not principal._secret_loaded and principal.password_hash is None:
            exclude = {"password_hash"}
        data = principal.model_dump(exclude=exclude)

        try:
            updated = await self.storage.update(Collections.PRINCIPALS, principal.id, data)
        except DuplicateKeyError as e:
            raise _duplicate_error(e)
        if not updated:
            raise NotFoundError("User not found")
        return principal

    async def delete(self, principal_id: str) -> bool:
        """Delete a principal together with its role profile."""
        principal = await self.find_by_id(principal_id)
        if principal is None:
            return False
        await self.storage.delete(PROFILE_COLLECTIONS[principal.role], principal_id)
        return await self.storage.delete(Collections.PRINCIPALS, principal_id)

    # =========================================================================
    # Role profiles
    # =========================================================================

    async def load_profile(self, principal: Principal) -> Profile | None:
        doc = await self.storage.get(PROFILE_COLLECTIONS[principal.role], principal.id)
        if doc is None:
            return None
        return parse_profile(doc)

    async def save_profile(self, profile: Profile) -> Profile:
        await self.ensure_indexes()
        try:
            await self.storage.save(
                PROFILE_COLLECTIONS[profile.role], profile.principal_id, profile.model_dump()
            )
        except DuplicateKeyError as e:
            raise _duplicate_error(e)
        return profile

    async def change_role(self, principal: Principal, new_role: Role) -> Principal:
        """
        Administrative role override.

        The old profile is dropped and a default profile for the new role is
        created; capabilities and verification never carry across roles.
        """
        await self.ensure_indexes()
        old_role = principal.role
        await self.storage.insert(
            PROFILE_COLLECTIONS[new_role],
            principal.id,
            PROFILE_MODELS[new_role](principal_id=principal.id).model_dump(),
        )
        principal.role = new_role
        try:
            await self.save(principal)
        except Exception:
            await self.storage.delete(PROFILE_COLLECTIONS[new_role], principal.id)
            principal.role = old_role
            raise
        await self.storage.delete(PROFILE_COLLECTIONS[old_role], principal.id)
        return principal
