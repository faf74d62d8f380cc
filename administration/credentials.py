import unicodedata

from django.utils.crypto import get_random_string

PASSWORD_CHARS = 'abcdefghijkmnpqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ23456789'


def normalize_name(value):
    """Lowercase ASCII letters only: accents stripped, spaces and punctuation dropped."""
    decomposed = unicodedata.normalize('NFD', value or '')
    ascii_only = ''.join(c for c in decomposed if not unicodedata.combining(c))
    return ''.join(c for c in ascii_only.lower() if 'a' <= c <= 'z')


def random_digits(length=3):
    return get_random_string(length, allowed_chars='0123456789')


def generate_password(length=8):
    return get_random_string(length, allowed_chars=PASSWORD_CHARS)


def generate_clock_in_code():
    return random_digits(6)


def _unique(build, exists, attempts=50):
    for _ in range(attempts):
        candidate = build()
        if not exists(candidate):
            return candidate
    raise RuntimeError("Could not generate a unique identifier")


def student_identifier(first_name, last_name, exists=lambda value: False):
    prefix = 'elv' + normalize_name(first_name)[:2] + normalize_name(last_name)[:2]
    return _unique(lambda: prefix + random_digits(3), exists)


def teacher_identifier(first_name, last_name, exists=lambda value: False):
    prefix = normalize_name(first_name)[:3] + normalize_name(last_name)[:3]
    return _unique(lambda: prefix + random_digits(3), exists)
