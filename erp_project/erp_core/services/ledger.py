import logging

from django.db import transaction

from ..exceptions import (ConflictError, InputValidationError,
                          InvalidStateError, NotFoundError,
                          translate_store_errors)
from ..models import ChartOfAccount, LedgerTransaction
from ..money import quantize_money, to_decimal
from .audit_helper import log_action

logger = logging.getLogger(__name__)


def get_account(company, account_id, lock=False):
    qs = ChartOfAccount.objects.for_company(company)
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=account_id)
    except (ChartOfAccount.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Account {account_id} not found")


# ----------------------------
# Chart of accounts
# ----------------------------
@translate_store_errors
def create_account(company, code, name, account_type, parent_id=None,
                   is_group=False, user=None):
    """Add an account; codes are unique per company, parents must be groups."""
    code = (code or "").strip()
    if not code or not (name or "").strip():
        raise InputValidationError("Account code and name are required")
    if account_type not in ChartOfAccount.Type.values:
        raise InputValidationError(f"Unknown account type {account_type!r}")

    with transaction.atomic():
        if ChartOfAccount.objects.for_company(company).filter(code=code).exists():
            raise ConflictError(f"Account code {code} already exists")

        parent, level = None, 0
        if parent_id is not None:
            parent = get_account(company, parent_id)
            if not parent.is_group:
                raise InvalidStateError(
                    f"{parent.code} is not a group account and cannot have children")
            level = parent.level + 1

        account = ChartOfAccount.objects.create(
            company=company,
            code=code,
            name=name.strip(),
            type=account_type,
            parent=parent,
            is_group=is_group,
            level=level,
        )
        log_action(action="create", instance=account, user=user,
                   changes={"code": code, "type": account_type, "level": level})

    logger.info("Created account %s %s", account.code, account.name)
    return account


@translate_store_errors
def delete_account(company, account_id, user=None):
    """Delete an account that has neither children nor postings."""
    with transaction.atomic():
        account = get_account(company, account_id, lock=True)
        if account.children.exists():
            raise InvalidStateError(
                f"Account {account.code} has sub-accounts and cannot be deleted")
        if (account.debit_postings.exists()
                or account.credit_postings.exists()):
            raise InvalidStateError(
                f"Account {account.code} has postings and cannot be deleted")

        log_action(action="delete", instance=account, user=user,
                   changes={"code": account.code, "name": account.name})
        code = account.code
        account.delete()

    logger.info("Deleted account %s", code)


# ----------------------------
# Postings
# ----------------------------
def _postable(company, account_id):
    account = get_account(company, account_id)
    if account.is_group:
        raise InvalidStateError(
            f"{account.code} is a group account; post to one of its children")
    if not account.is_active:
        raise InvalidStateError(f"{account.code} is inactive")
    return account


@translate_store_errors
def post_transaction(company, date, debit_account_id, credit_account_id,
                     amount, description="", reference="", user=None):
    """Debit one account and credit another with the same amount."""
    amount = quantize_money(to_decimal(amount, "amount"))
    if amount <= 0:
        raise InputValidationError("Posting amount must be greater than zero")
    if str(debit_account_id) == str(credit_account_id):
        raise InputValidationError("Debit and credit accounts must differ")

    with transaction.atomic():
        debit = _postable(company, debit_account_id)
        credit = _postable(company, credit_account_id)

        posting = LedgerTransaction.objects.create(
            company=company,
            date=date,
            debit_account=debit,
            credit_account=credit,
            amount=amount,
            description=description or "",
            reference=reference or "",
            created_by=user if getattr(user, "is_authenticated", False) else None,
        )
        log_action(action="post", instance=posting, user=user,
                   changes={"debit": debit.code, "credit": credit.code,
                            "amount": amount})

    logger.info("Posted %s: Dr %s / Cr %s", amount, debit.code, credit.code)
    return posting
