"""User, company and team administration.

Every mutation runs in one ``transaction.atomic()`` block together with its
audit entry, so a failed audit write also undoes the change.
"""
from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterable, Mapping, Optional

from django.conf import settings
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from assethub.errors import ConflictError, NotFoundError, ValidationError
from audit.context import EMPTY_CONTEXT, AuditContext
from audit.ledger import AuditLedger
from audit.models import AuditAction, ResourceType

from .models import Company, User, UserRole

logger = logging.getLogger(__name__)

ACTIVATION_CODE_ALPHABET = string.ascii_uppercase + string.digits
ACTIVATION_CODE_LENGTH = 12
USER_EDITABLE_FIELDS = ("first_name", "last_name", "email", "role", "company")


@dataclass(frozen=True)
class CreatedUser:
    user: User
    activation_code: str


def generate_activation_code() -> str:
    while True:
        code = "".join(secrets.choice(ACTIVATION_CODE_ALPHABET) for _ in range(ACTIVATION_CODE_LENGTH))
        if not User.objects.filter(activation_code=code).exists():
            return code


def _activation_expiry():
    return timezone.now() + timedelta(hours=settings.ACTIVATION_CODE_TTL_HOURS)


def _ledger(ledger: Optional[AuditLedger]) -> AuditLedger:
    return ledger or AuditLedger()


def create_user_with_activation(
    *,
    actor: User,
    data: Mapping[str, Any],
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
) -> CreatedUser:
    """Create an account without a usable password and hand out its activation code."""

    email = (data.get("email") or "").strip().lower()
    if not email:
        raise ValidationError("Email is required.", fields={"email": "required"})
    role = data.get("role") or UserRole.CONTENT_CREATOR
    if role not in UserRole.values:
        raise ValidationError("Unknown role.", fields={"role": f"must be one of {', '.join(UserRole.values)}"})
    if User.objects.filter(email__iexact=email).exists():
        raise ConflictError("A user with this email already exists.")
    username = (data.get("username") or email).strip()
    if User.objects.filter(username=username).exists():
        raise ConflictError("A user with this username already exists.")

    with transaction.atomic():
        user = User(
            username=username,
            email=email,
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            role=role,
            company=data.get("company"),
            is_activated=False,
            activation_code=generate_activation_code(),
            activation_code_expires_at=_activation_expiry(),
        )
        user.set_unusable_password()
        user.save()
        _ledger(ledger).append(
            user=actor,
            action=AuditAction.CREATE,
            resource_type=ResourceType.USER,
            resource_id=user.pk,
            metadata={
                "email": user.email,
                "role": user.role,
                "company_id": user.company_id,
                "operation": "create_with_activation",
            },
            **context.as_kwargs(),
        )

    logger.info("User created pending activation", extra={"user_id": user.pk, "actor_id": actor.pk})
    return CreatedUser(user=user, activation_code=user.activation_code)


def regenerate_activation_code(
    *,
    actor: User,
    user: User,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
) -> CreatedUser:
    if user.is_activated:
        raise ConflictError("User is already activated.")
    with transaction.atomic():
        user.activation_code = generate_activation_code()
        user.activation_code_expires_at = _activation_expiry()
        user.save(update_fields=["activation_code", "activation_code_expires_at", "updated_at"])
        _ledger(ledger).append(
            user=actor,
            action=AuditAction.UPDATE,
            resource_type=ResourceType.USER,
            resource_id=user.pk,
            metadata={"operation": "regenerate_activation_code"},
            **context.as_kwargs(),
        )
    return CreatedUser(user=user, activation_code=user.activation_code)


def activate_account(*, email: str, code: str, password: str) -> User:
    """Set the password of a pending account and mark it activated."""

    user = User.objects.filter(
        email__iexact=(email or "").strip(),
        activation_code=code,
        is_activated=False,
    ).first()
    if user is None:
        logger.info("Activation rejected", extra={"error_code": "INVALID_ACTIVATION_CODE"})
        raise ValidationError("Invalid activation code or email.", fields={"code": "invalid"})
    if not user.activation_code_is_valid():
        raise ValidationError(
            "Activation code has expired. Please contact your administrator.",
            fields={"code": "expired"},
        )
    try:
        validate_password(password, user=user)
    except DjangoValidationError as exc:
        raise ValidationError("Password is too weak.", fields={"password": " ".join(exc.messages)}) from None

    with transaction.atomic():
        user.set_password(password)
        user.is_activated = True
        user.activated_at = timezone.now()
        user.activation_code = None
        user.activation_code_expires_at = None
        user.save(update_fields=[
            "password", "is_activated", "activated_at",
            "activation_code", "activation_code_expires_at", "updated_at",
        ])
    logger.info("Account activated", extra={"user_id": user.pk})
    return user


def update_user(
    *,
    actor: User,
    user: User,
    changes: Mapping[str, Any],
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
) -> User:
    unknown = set(changes) - set(USER_EDITABLE_FIELDS)
    if unknown:
        raise ValidationError("Unsupported fields.", fields={name: "not editable" for name in sorted(unknown)})
    if "role" in changes and changes["role"] not in UserRole.values:
        raise ValidationError("Unknown role.", fields={"role": f"must be one of {', '.join(UserRole.values)}"})
    if "email" in changes:
        email = (changes["email"] or "").strip().lower()
        if User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists():
            raise ConflictError("A user with this email already exists.")
        changes = {**changes, "email": email}
    if user.pk == actor.pk and changes.get("role", user.role) != UserRole.ADMIN:
        raise ValidationError("You cannot remove your own admin role.", fields={"role": "self demotion"})

    previous, new = {}, {}
    for name, value in changes.items():
        current = getattr(user, name)
        if current != value:
            previous[name] = _audit_value(current)
            new[name] = _audit_value(value)
            setattr(user, name, value)
    if not new:
        return user

    with transaction.atomic():
        user.save()
        _ledger(ledger).append(
            user=actor,
            action=AuditAction.UPDATE,
            resource_type=ResourceType.USER,
            resource_id=user.pk,
            metadata={"previous": previous, "new": new, "operation": "update"},
            **context.as_kwargs(),
        )
    return user


def deactivate_user(
    *,
    actor: User,
    user: User,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
) -> User:
    """Withdraw every permission grant from ``user``; their audit history stays."""

    if user.pk == actor.pk:
        raise ValidationError("Cannot deactivate your own account.", fields={"user": "self"})
    if not user.is_active:
        raise ConflictError("User is already deactivated.")
    return _set_active(actor, user, False, context, ledger)


def reactivate_user(
    *,
    actor: User,
    user: User,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
) -> User:
    if user.is_active:
        raise ConflictError("User is already active.")
    return _set_active(actor, user, True, context, ledger)


def _set_active(actor, user, active, context, ledger):
    with transaction.atomic():
        user.is_active = active
        user.save(update_fields=["is_active", "updated_at"])
        _ledger(ledger).append(
            user=actor,
            action=AuditAction.UPDATE,
            resource_type=ResourceType.USER,
            resource_id=user.pk,
            metadata={
                "operation": "reactivate" if active else "deactivate",
                "email": user.email,
            },
            **context.as_kwargs(),
        )
    logger.info(
        "User %s", "reactivated" if active else "deactivated",
        extra={"user_id": user.pk, "actor_id": actor.pk},
    )
    return user


def create_company(
    *,
    actor: User,
    name: str,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
) -> Company:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Company name is required.", fields={"name": "required"})
    if Company.objects.filter(name__iexact=name).exists():
        raise ConflictError("A company with this name already exists.")
    with transaction.atomic():
        company = Company.objects.create(name=name)
        _ledger(ledger).append(
            user=actor,
            action=AuditAction.CREATE,
            resource_type=ResourceType.COMPANY,
            resource_id=company.pk,
            metadata={"name": company.name},
            **context.as_kwargs(),
        )
    return company


def rename_company(
    *,
    actor: User,
    company: Company,
    name: str,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
) -> Company:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Company name is required.", fields={"name": "required"})
    if name == company.name:
        return company
    if Company.objects.filter(name__iexact=name).exclude(pk=company.pk).exists():
        raise ConflictError("A company with this name already exists.")
    previous = company.name
    with transaction.atomic():
        company.name = name
        company.save(update_fields=["name", "updated_at"])
        _ledger(ledger).append(
            user=actor,
            action=AuditAction.UPDATE,
            resource_type=ResourceType.COMPANY,
            resource_id=company.pk,
            metadata={"previous": {"name": previous}, "new": {"name": name}, "operation": "rename"},
            **context.as_kwargs(),
        )
    return company


def assign_users_to_company(
    *,
    actor: User,
    company: Company,
    user_ids: Iterable[int],
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
) -> list:
    user_ids = sorted(set(user_ids))
    if not user_ids:
        raise ValidationError("At least one user is required.", fields={"user_ids": "required"})
    found = set(User.objects.filter(pk__in=user_ids).values_list("pk", flat=True))
    missing = [pk for pk in user_ids if pk not in found]
    if missing:
        raise NotFoundError(f"Users not found: {', '.join(str(pk) for pk in missing)}.")
    with transaction.atomic():
        User.objects.filter(pk__in=user_ids).update(company=company, updated_at=timezone.now())
        _ledger(ledger).append(
            user=actor,
            action=AuditAction.UPDATE,
            resource_type=ResourceType.COMPANY,
            resource_id=company.pk,
            metadata={"operation": "assign_users", "user_ids": user_ids, "user_count": len(user_ids)},
            **context.as_kwargs(),
        )
    return user_ids


def delete_company(
    *,
    actor: User,
    company: Company,
    context: AuditContext = EMPTY_CONTEXT,
    ledger: Optional[AuditLedger] = None,
) -> None:
    """Delete a company that no longer has users or assets attached."""

    user_count = company.users.count()
    asset_count = company.assets.count()
    if user_count or asset_count:
        reasons = []
        if user_count:
            reasons.append(f"{user_count} user(s)")
        if asset_count:
            reasons.append(f"{asset_count} asset(s)")
        raise ConflictError(f"Cannot delete company: {' and '.join(reasons)} are associated with this company.")

    with transaction.atomic():
        _ledger(ledger).append(
            user=actor,
            action=AuditAction.DELETE,
            resource_type=ResourceType.COMPANY,
            resource_id=company.pk,
            metadata={"name": company.name},
            **context.as_kwargs(),
        )
        company.delete()


def expire_stale_activation_codes(now=None) -> int:
    """Clear activation codes past their expiry; returns the number cleared."""

    now = now or timezone.now()
    return User.objects.filter(
        is_activated=False,
        activation_code__isnull=False,
        activation_code_expires_at__lt=now,
    ).update(activation_code=None, activation_code_expires_at=None, updated_at=now)


def _audit_value(value):
    if isinstance(value, Company):
        return str(value.pk)
    return value
