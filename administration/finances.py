"""
Tuition and fee calculations.

Everything here works on plain data so it can be used from views, forms and
tests alike. ``FeeCalculator.from_database()`` builds a calculator from the
configured class tariffs, option prices and installment plans.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_CEILING
import logging

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

# Re-enrollment halves the registration fee.
RE_ENROLLMENT_RATE = Decimal('0.5')

# Tuition is spread over the school year, September to June.
SCHOOL_YEAR_MONTHS = [
    'September', 'October', 'November', 'December', 'January',
    'February', 'March', 'April', 'May', 'June',
]
TUITION_MONTHS = len(SCHOOL_YEAR_MONTHS)

STANDARD_OPTIONS = [
    ('uniform', 'School uniform'),
    ('school_card', 'School card'),
    ('cooperative', 'Cooperative'),
    ('sports_uniform', 'Sports uniform'),
    ('insurance', 'Insurance'),
]
STANDARD_OPTION_KEYS = [key for key, _ in STANDARD_OPTIONS]

OPTION_PREFIX = 'Option:'
INSTALLMENT_PREFIX = 'Installment'

PAYMENT_TUITION = 'tuition'
PAYMENT_REGISTRATION = 'registration'
PAYMENT_OTHER = 'other'


def to_decimal(value):
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_up(amount):
    """Round a non-negative amount up to the next whole unit."""
    return to_decimal(amount).quantize(Decimal('1'), rounding=ROUND_CEILING)


def installment_label(number):
    return f"{INSTALLMENT_PREFIX} {number}"


def option_label(name):
    return f"{OPTION_PREFIX} {name}"


@dataclass
class Tariff:
    class_name: str
    registration_fee: Decimal = ZERO
    annual_tuition: Decimal = ZERO


@dataclass
class CustomOptionPrice:
    id: int
    name: str
    price: Decimal = ZERO


@dataclass
class Installment:
    number: int
    percentage: Decimal
    start_date: object = None
    end_date: object = None

    @property
    def label(self):
        return installment_label(self.number)


@dataclass
class FeeProfile:
    """What the fee engine needs to know about a student (or an enrollment form)."""
    class_name: str = ''
    enrollment_type: str = 'inscription'
    options: dict = field(default_factory=dict)
    custom_options: list = field(default_factory=list)


@dataclass
class DebtBreakdown:
    registration_fee: Decimal
    tuition: Decimal
    options: dict
    options_total: Decimal
    total: Decimal


@dataclass
class FeeDetail:
    registration_fee: Decimal
    tuition: Decimal
    options: dict
    total: Decimal
    per_month: Decimal = ZERO
    installments: list = field(default_factory=list)


@dataclass
class ItemDetail:
    amount: Decimal
    payment_type: str
    description: str


@dataclass
class AccountFollowUp:
    tuition_debt: Decimal
    total_debt: Decimal
    tuition_paid: Decimal
    total_paid: Decimal
    tuition_remaining: Decimal
    total_remaining: Decimal
    percentage_paid: Decimal
    remaining_months: list
    remaining_installments: list
    remaining_options: list


class FeeCalculator:
    """Derives debts, monthly and installment amounts from the tariff tables."""

    def __init__(self, tariffs=(), option_prices=None, custom_options=(), installments=()):
        self.tariffs = {t.class_name: t for t in tariffs}
        prices = option_prices or {}
        self.option_prices = {key: to_decimal(prices.get(key)) for key in STANDARD_OPTION_KEYS}
        self.custom_options = list(custom_options)
        self.installments = sorted(installments, key=lambda i: i.number)

    @classmethod
    def from_database(cls):
        from .models import CustomOption, InstallmentPlan, SchoolClass, SchoolSettings

        tariffs = [
            Tariff(c.name, c.registration_fee, c.annual_tuition)
            for c in SchoolClass.objects.all()
        ]
        custom = [CustomOptionPrice(o.id, o.name, o.price) for o in CustomOption.objects.all()]
        installments = [
            Installment(p.number, p.percentage, p.start_date, p.end_date)
            for p in InstallmentPlan.objects.all()
        ]
        return cls(tariffs, SchoolSettings.load().option_prices(), custom, installments)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def tariff_for(self, class_name):
        return self.tariffs.get(class_name)

    def custom_option(self, option_id):
        for option in self.custom_options:
            if option.id == option_id:
                return option
        return None

    def option_price_by_name(self, name):
        """Standard option by key first, then custom option by name; 0 if unknown."""
        price = self.option_prices.get(name, ZERO)
        if price == ZERO:
            for option in self.custom_options:
                if option.name == name:
                    return to_decimal(option.price)
        return price

    def installment(self, number):
        for plan in self.installments:
            if plan.number == number:
                return plan
        return None

    # ------------------------------------------------------------------
    # Debts
    # ------------------------------------------------------------------
    def student_debt(self, profile):
        tariff = self.tariff_for(profile.class_name)

        tuition = to_decimal(tariff.annual_tuition) if tariff else ZERO

        registration_fee = to_decimal(tariff.registration_fee) if tariff else ZERO
        if profile.enrollment_type == 'reinscription':
            registration_fee = registration_fee * RE_ENROLLMENT_RATE

        options = {key: ZERO for key in STANDARD_OPTION_KEYS}
        for key, selected in (profile.options or {}).items():
            if selected and key in options:
                options[key] = self.option_prices.get(key, ZERO)

        options_total = sum(options.values(), ZERO) + self._custom_options_total(profile)

        return DebtBreakdown(
            registration_fee=registration_fee,
            tuition=tuition,
            options=options,
            options_total=options_total,
            total=registration_fee + tuition + options_total,
        )

    def options_debt(self, profile):
        standard = ZERO
        for key, selected in (profile.options or {}).items():
            if selected:
                standard += self.option_prices.get(key, ZERO)
        return standard + self._custom_options_total(profile)

    def _custom_options_total(self, profile):
        total = ZERO
        for option_id in profile.custom_options or ():
            option = self.custom_option(option_id)
            if option:
                total += to_decimal(option.price)
        return total

    def monthly_amount(self, profile):
        return round_up(self.student_debt(profile).tuition / TUITION_MONTHS)

    def installment_amount(self, profile, percentage):
        tuition = self.student_debt(profile).tuition
        return round_up(tuition * to_decimal(percentage) / 100)

    # ------------------------------------------------------------------
    # Enrollment quotes and item pricing
    # ------------------------------------------------------------------
    def detailed_fees(self, profile, payment_mode, items=(), installments=None):
        debt = self.student_debt(profile)
        plans = self.installments if installments is None else installments
        items = list(items or ())

        tuition = ZERO
        per_month = ZERO
        selected_installments = []

        if payment_mode == 'monthly':
            if items:
                per_month = self.monthly_amount(profile)
                tuition = per_month * len(items)
        elif payment_mode == 'installments':
            chosen = [i for i in items if i.startswith(INSTALLMENT_PREFIX)]
            if chosen and plans:
                for plan in plans:
                    if plan.label in items:
                        amount = self.installment_amount(profile, plan.percentage)
                        tuition += amount
                        selected_installments.append({
                            'number': plan.number,
                            'amount': amount,
                            'start_date': plan.start_date,
                            'end_date': plan.end_date,
                            'percentage': plan.percentage,
                        })

        return FeeDetail(
            registration_fee=debt.registration_fee,
            tuition=tuition,
            options=debt.options,
            total=debt.registration_fee + tuition + debt.options_total,
            per_month=per_month,
            installments=selected_installments,
        )

    def payment_detail_for_item(self, profile, item):
        if item.startswith(OPTION_PREFIX):
            name = item[len(OPTION_PREFIX):].strip()
            return ItemDetail(self.option_price_by_name(name), PAYMENT_OTHER, item)

        if item.startswith(INSTALLMENT_PREFIX):
            amount = ZERO
            try:
                number = int(item.split()[1])
            except (IndexError, ValueError):
                number = None
            plan = self.installment(number) if number is not None else None
            if plan:
                amount = self.installment_amount(profile, plan.percentage)
            return ItemDetail(amount, PAYMENT_TUITION, f"Payment for {item}")

        return ItemDetail(self.monthly_amount(profile), PAYMENT_TUITION, f"Payment for {item}")

    def amount_for_items(self, profile, items):
        return sum((self.payment_detail_for_item(profile, item).amount for item in items), ZERO)

    # ------------------------------------------------------------------
    # Follow-up
    # ------------------------------------------------------------------
    def account_follow_up(self, profile, payments):
        """
        Summarise what a student owes and has paid.

        ``payments`` is an iterable of objects with ``amount``,
        ``payment_type`` and ``items`` attributes.
        """
        debt = self.student_debt(profile)

        tuition_paid = ZERO
        total_paid = ZERO
        paid_items = set()
        for payment in payments:
            amount = to_decimal(payment.amount)
            total_paid += amount
            if payment.payment_type == PAYMENT_TUITION:
                tuition_paid += amount
            paid_items.update(payment.items or ())

        remaining_months = [m for m in SCHOOL_YEAR_MONTHS if m not in paid_items]
        remaining_installments = [
            {'number': plan.number, 'amount': self.installment_amount(profile, plan.percentage)}
            for plan in self.installments
            if plan.label not in paid_items
        ]

        remaining_options = []
        for key, label in STANDARD_OPTIONS:
            if (profile.options or {}).get(key) and option_label(key) not in paid_items:
                remaining_options.append({'name': key, 'label': label, 'price': self.option_prices[key]})
        for option_id in profile.custom_options or ():
            option = self.custom_option(option_id)
            if option and option_label(option.name) not in paid_items:
                remaining_options.append({'name': option.name, 'label': option.name, 'price': to_decimal(option.price)})

        if debt.total > 0:
            percentage = (total_paid / debt.total * 100).quantize(Decimal('0.01'))
        else:
            percentage = ZERO

        return AccountFollowUp(
            tuition_debt=debt.tuition,
            total_debt=debt.total,
            tuition_paid=tuition_paid,
            total_paid=total_paid,
            tuition_remaining=max(debt.tuition - tuition_paid, ZERO),
            total_remaining=max(debt.total - total_paid, ZERO),
            percentage_paid=percentage,
            remaining_months=remaining_months,
            remaining_installments=remaining_installments,
            remaining_options=remaining_options,
        )


def payment_status(total_paid, total_due):
    total_paid = to_decimal(total_paid)
    total_due = to_decimal(total_due)
    if total_paid >= total_due:
        return 'paid'
    if total_paid > 0:
        return 'partial'
    return 'unpaid'
