"""
Celery tasks for back-office batch work.

- ingest_loan_products: loads the product catalogue from
  loan_products.xlsx (pandas), idempotent on product name.
- mark_overdue_installments: daily sweep that moves past-due pending
  installments to overdue and refreshes their late fees.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

import pandas as pd
from celery import shared_task
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.core.exceptions import DataIngestionError
from apps.core.utils import calculate_late_fee

logger = logging.getLogger(__name__)

PRODUCT_REQUIRED_COLUMNS = (
    'name', 'min_amount', 'max_amount', 'interest_rate',
    'min_tenure', 'max_tenure',
)


def _decimal_or(value, default):
    if pd.isna(value):
        return Decimal(default)
    return Decimal(str(value))


def _read_products(file_path: Path) -> pd.DataFrame:
    df = pd.read_excel(file_path)

    # Normalize column names
    df.columns = [str(col).strip().lower().replace(' ', '_') for col in df.columns]

    missing = [col for col in PRODUCT_REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise DataIngestionError(
            f"{file_path.name} is missing columns: {', '.join(missing)}"
        )
    return df


@shared_task(
    bind=True,
    name='core.ingest_loan_products',
    max_retries=3,
    default_retry_delay=10,
)
def ingest_loan_products(self):
    """
    Ingest the loan product catalogue from loan_products.xlsx.

    Rows are matched on product name via update_or_create, so the task
    is safe to run repeatedly. Rows with inconsistent bounds are skipped.
    """
    from apps.loans.models import LoanProduct

    file_path = Path(settings.DATA_DIR) / 'loan_products.xlsx'

    if not file_path.exists():
        logger.error("Loan product file not found: %s", file_path)
        return {'status': 'error', 'message': f'File not found: {file_path}'}

    try:
        df = _read_products(file_path)
    except DataIngestionError as exc:
        logger.error("Loan product ingestion aborted: %s", exc)
        return {'status': 'error', 'message': str(exc)}

    try:
        logger.info("Read %d rows from %s", len(df), file_path.name)

        created_count = 0
        updated_count = 0
        error_count = 0

        for index, row in df.iterrows():
            try:
                name = row.get('name')
                if pd.isna(name) or not str(name).strip():
                    logger.warning("Row %d: missing product name, skipping", index)
                    error_count += 1
                    continue

                product_data = {
                    'description': '' if pd.isna(row.get('description')) else str(row.get('description')),
                    'min_amount': _decimal_or(row['min_amount'], '0'),
                    'max_amount': _decimal_or(row['max_amount'], '0'),
                    'interest_rate': _decimal_or(row['interest_rate'], '0'),
                    'min_tenure': int(row['min_tenure']),
                    'max_tenure': int(row['max_tenure']),
                    'processing_fee': _decimal_or(row.get('processing_fee'), '0'),
                    'late_fee_percentage': _decimal_or(row.get('late_fee_percentage'), '2'),
                    'is_active': True,
                }

                if (
                    product_data['min_amount'] <= 0
                    or product_data['min_amount'] > product_data['max_amount']
                    or product_data['min_tenure'] < 1
                    or product_data['min_tenure'] > product_data['max_tenure']
                ):
                    logger.warning(
                        "Row %d: inconsistent bounds for product %s, skipping",
                        index,
                        name,
                    )
                    error_count += 1
                    continue

                _, created = LoanProduct.objects.update_or_create(
                    name=str(name).strip(),
                    defaults=product_data,
                )

                if created:
                    created_count += 1
                else:
                    updated_count += 1

            except (ValueError, TypeError, InvalidOperation, IntegrityError) as e:
                logger.warning(
                    "Row %d: failed to process: %s", index, str(e)
                )
                error_count += 1
                continue

        result = {
            'status': 'success',
            'total_rows': len(df),
            'created': created_count,
            'updated': updated_count,
            'errors': error_count,
        }
        logger.info("Loan product ingestion complete: %s", result)
        return result

    except Exception as exc:
        logger.exception("Loan product ingestion failed")
        raise self.retry(exc=exc)


@shared_task(
    bind=True,
    name='core.mark_overdue_installments',
    max_retries=3,
    default_retry_delay=60,
)
def mark_overdue_installments(self, as_of=None):
    """
    Flag unpaid installments whose due date has passed.

    Pending installments due before ``as_of`` (ISO date, default today)
    become overdue. Every past-due unpaid installment gets its late fee
    recomputed from the product's late fee percentage and the days
    overdue. Paid installments and loan balances are never touched.
    """
    from apps.loans.models import Installment, Loan

    as_of = date.fromisoformat(as_of) if as_of else timezone.localdate()

    try:
        with transaction.atomic():
            past_due = (
                Installment.objects
                .select_for_update()
                .select_related('loan__product')
                .filter(
                    status__in=[Installment.Status.PENDING, Installment.Status.OVERDUE],
                    due_date__lt=as_of,
                    loan__status=Loan.Status.ACTIVE,
                )
            )

            marked = 0
            to_update = []
            for installment in past_due:
                if installment.status == Installment.Status.PENDING:
                    marked += 1
                installment.status = Installment.Status.OVERDUE
                installment.late_fee = calculate_late_fee(
                    installment.emi_amount,
                    installment.loan.product.late_fee_percentage,
                    (as_of - installment.due_date).days,
                )
                installment.updated_at = timezone.now()
                to_update.append(installment)

            Installment.objects.bulk_update(
                to_update, ['status', 'late_fee', 'updated_at'],
            )

        result = {
            'status': 'success',
            'as_of': as_of.isoformat(),
            'newly_overdue': marked,
            'late_fees_updated': len(to_update),
        }
        logger.info("Overdue sweep complete: %s", result)
        return result

    except Exception as exc:
        logger.exception("Overdue sweep failed")
        raise self.retry(exc=exc)
