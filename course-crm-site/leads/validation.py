# leads/validation.py
"""Mobile number rules per country dialing code, used by the intake form."""
import re
from collections import namedtuple

PhoneRule = namedtuple('PhoneRule', 'country lengths pattern example')

COUNTRY_PHONE_RULES = {
    '+52':  PhoneRule('Mexico',     (10,),    re.compile(r'^[1-9]{2}[0-9]{8}$'), '5512345678'),
    '+54':  PhoneRule('Argentina',  (10, 11), re.compile(r'^1[0-9]{9,10}$'), '1123456789'),
    '+55':  PhoneRule('Brasil',     (11,),    re.compile(r'^1[1-9]9[0-9]{8}$'), '11987654321'),
    '+56':  PhoneRule('Chile',      (9,),     re.compile(r'^[89][0-9]{8}$'), '987654321'),
    '+57':  PhoneRule('Colombia',   (10,),    re.compile(r'^3[0-9]{9}$'), '3001234567'),
    '+506': PhoneRule('Costa Rica', (8,),     re.compile(r'^[6-8][0-9]{7}$'), '87654321'),
    '+51':  PhoneRule('Peru',       (9,),     re.compile(r'^9[0-9]{8}$'), '987654321'),
    '+58':  PhoneRule('Venezuela',  (10,),    re.compile(r'^(412|414|424|416|426)[0-9]{7}$'), '4123456789'),
    '+593': PhoneRule('Ecuador',    (9,),     re.compile(r'^9[0-9]{8}$'), '987654321'),
    '+591': PhoneRule('Bolivia',    (8,),     re.compile(r'^[67][0-9]{7}$'), '71234567'),
    '+598': PhoneRule('Uruguay',    (8,),     re.compile(r'^9[0-9]{7}$'), '91234567'),
    '+595': PhoneRule('Paraguay',   (9,),     re.compile(r'^9[0-9]{8}$'), '987654321'),
}

COUNTRY_CODE_CHOICES = [(code, f"{rule.country} ({code})") for code, rule in COUNTRY_PHONE_RULES.items()]


def normalize_phone(value):
    return re.sub(r'[^0-9]', '', value or '')


def validate_phone(value, country_code):
    """
    Returns (is_valid, message). The message carries a valid example when the
    number is rejected.
    """
    rule = COUNTRY_PHONE_RULES.get(country_code)
    if rule is None:
        return False, 'Código de país no soportado'
    digits = normalize_phone(value)
    if len(digits) in rule.lengths and rule.pattern.match(digits):
        return True, ''
    return False, f'Ejemplo válido: {country_code} {rule.example}'
