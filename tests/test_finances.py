from decimal import Decimal
from types import SimpleNamespace

import pytest

from administration.finances import (
    CustomOptionPrice, FeeCalculator, FeeProfile, Installment, SCHOOL_YEAR_MONTHS, Tariff,
    installment_label, option_label, payment_status, round_up,
)


@pytest.fixture
def calculator():
    return FeeCalculator(
        tariffs=[
            Tariff('6A', Decimal('20000'), Decimal('150000')),
            Tariff('CM2', Decimal('15000'), Decimal('155555')),
        ],
        option_prices={'uniform': Decimal('8000'), 'insurance': Decimal('2500')},
        custom_options=[CustomOptionPrice(1, 'Transport', Decimal('3000'))],
        installments=[
            Installment(2, Decimal('33')),
            Installment(1, Decimal('40')),
            Installment(3, Decimal('27')),
        ],
    )


def payment(amount, payment_type='tuition', items=()):
    return SimpleNamespace(amount=Decimal(amount), payment_type=payment_type, items=list(items))


def test_round_up_goes_to_next_unit():
    assert round_up(Decimal('15555.5')) == Decimal('15556')
    assert round_up(Decimal('15000')) == Decimal('15000')
    assert round_up(None) == Decimal('0')


def test_labels():
    assert installment_label(2) == 'Installment 2'
    assert option_label('uniform') == 'Option: uniform'


def test_new_enrollment_debt(calculator):
    debt = calculator.student_debt(FeeProfile('6A', 'inscription', {'uniform': True, 'insurance': False}))
    assert debt.registration_fee == Decimal('20000')
    assert debt.tuition == Decimal('150000')
    assert debt.options['uniform'] == Decimal('8000')
    assert debt.options['insurance'] == Decimal('0')
    assert debt.total == Decimal('178000')


def test_re_enrollment_halves_registration_fee(calculator):
    debt = calculator.student_debt(FeeProfile('6A', 'reinscription'))
    assert debt.registration_fee == Decimal('10000')
    assert debt.total == Decimal('160000')


def test_unknown_class_owes_only_options(calculator):
    debt = calculator.student_debt(FeeProfile('Terminale', options={'insurance': True}, custom_options=[1]))
    assert debt.tuition == Decimal('0')
    assert debt.registration_fee == Decimal('0')
    assert debt.total == Decimal('5500')


def test_custom_options_are_added(calculator):
    profile = FeeProfile('6A', custom_options=[1, 99])
    assert calculator.options_debt(profile) == Decimal('3000')
    assert calculator.student_debt(profile).total == Decimal('173000')


def test_monthly_amount_is_rounded_up_and_covers_tuition(calculator):
    profile = FeeProfile('CM2')
    monthly = calculator.monthly_amount(profile)
    assert monthly == Decimal('15556')
    assert monthly * 10 >= Decimal('155555')


def test_installment_amount_is_rounded_up(calculator):
    assert calculator.installment_amount(FeeProfile('CM2'), Decimal('33')) == Decimal('51334')


def test_installments_are_sorted(calculator):
    assert [plan.number for plan in calculator.installments] == [1, 2, 3]
    assert calculator.installment(2).percentage == Decimal('33')
    assert calculator.installment(7) is None


def test_detailed_fees_monthly(calculator):
    detail = calculator.detailed_fees(FeeProfile('6A', options={'uniform': True}), 'monthly',
                                      ['September', 'October', 'November'])
    assert detail.per_month == Decimal('15000')
    assert detail.tuition == Decimal('45000')
    assert detail.total == Decimal('20000') + Decimal('45000') + Decimal('8000')


def test_detailed_fees_monthly_without_months(calculator):
    detail = calculator.detailed_fees(FeeProfile('6A'), 'monthly')
    assert detail.tuition == Decimal('0')
    assert detail.total == Decimal('20000')


def test_detailed_fees_installments(calculator):
    detail = calculator.detailed_fees(FeeProfile('6A'), 'installments', ['Installment 1', 'Installment 3'])
    assert [i['number'] for i in detail.installments] == [1, 3]
    assert detail.tuition == Decimal('60000') + Decimal('40500')
    assert detail.per_month == Decimal('0')


def test_item_detail_for_standard_option(calculator):
    detail = calculator.payment_detail_for_item(FeeProfile('6A'), 'Option: uniform')
    assert detail.amount == Decimal('8000')
    assert detail.payment_type == 'other'
    assert detail.description == 'Option: uniform'


def test_item_detail_for_custom_option_by_name(calculator):
    detail = calculator.payment_detail_for_item(FeeProfile('6A'), 'Option: Transport')
    assert detail.amount == Decimal('3000')


def test_item_detail_for_installment(calculator):
    detail = calculator.payment_detail_for_item(FeeProfile('6A'), 'Installment 2')
    assert detail.amount == Decimal('49500')
    assert detail.payment_type == 'tuition'
    assert detail.description == 'Payment for Installment 2'


def test_item_detail_for_unknown_installment_is_zero(calculator):
    assert calculator.payment_detail_for_item(FeeProfile('6A'), 'Installment 9').amount == Decimal('0')
    assert calculator.payment_detail_for_item(FeeProfile('6A'), 'Installment').amount == Decimal('0')


def test_item_detail_for_month(calculator):
    detail = calculator.payment_detail_for_item(FeeProfile('CM2'), 'January')
    assert detail.amount == Decimal('15556')
    assert detail.payment_type == 'tuition'


def test_amount_for_items(calculator):
    total = calculator.amount_for_items(FeeProfile('6A'), ['September', 'Option: insurance'])
    assert total == Decimal('17500')


def test_account_follow_up(calculator):
    profile = FeeProfile('6A', options={'uniform': True, 'insurance': True}, custom_options=[1])
    payments = [
        payment('20000', 'registration'),
        payment('15000', items=['September']),
        payment('15000', items=['October']),
        payment('8000', 'other', items=['Option: uniform']),
    ]
    follow_up = calculator.account_follow_up(profile, payments)

    assert follow_up.total_debt == Decimal('183500')
    assert follow_up.tuition_paid == Decimal('30000')
    assert follow_up.total_paid == Decimal('58000')
    assert follow_up.tuition_remaining == Decimal('120000')
    assert follow_up.total_remaining == Decimal('125500')
    assert follow_up.remaining_months == SCHOOL_YEAR_MONTHS[2:]
    assert [o['name'] for o in follow_up.remaining_options] == ['insurance', 'Transport']
    assert len(follow_up.remaining_installments) == 3


def test_account_follow_up_never_goes_negative(calculator):
    follow_up = calculator.account_follow_up(FeeProfile('6A'), [payment('500000')])
    assert follow_up.total_remaining == Decimal('0')
    assert follow_up.tuition_remaining == Decimal('0')


def test_account_follow_up_without_debt(calculator):
    follow_up = calculator.account_follow_up(FeeProfile('Unknown'), [])
    assert follow_up.percentage_paid == Decimal('0')


def test_paid_installments_are_not_remaining(calculator):
    follow_up = calculator.account_follow_up(FeeProfile('6A'), [payment('60000', items=['Installment 1'])])
    assert [i['number'] for i in follow_up.remaining_installments] == [2, 3]


@pytest.mark.parametrize('paid, due, expected', [
    (Decimal('0'), Decimal('100'), 'unpaid'),
    (Decimal('40'), Decimal('100'), 'partial'),
    (Decimal('100'), Decimal('100'), 'paid'),
    (Decimal('0'), Decimal('0'), 'paid'),
])
def test_payment_status(paid, due, expected):
    assert payment_status(paid, due) == expected
