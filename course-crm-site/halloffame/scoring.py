# halloffame/scoring.py
from collections import namedtuple

Category = namedtuple('Category', 'id name points')

CATEGORIES = {
    'learning':     Category('learning', 'Aprendizaje', 10),
    'brand':        Category('brand', 'Marca Personal', 20),
    'results':      Category('results', 'Resultados', 40),
    'monetization': Category('monetization', 'Monetización', 100),
}

# highest threshold first
LEVELS = (
    (500, 'Master Persuasivo'),
    (300, 'Conquistador Visual'),
    (200, 'Influencer'),
    (100, 'Editor en Acción'),
    (0,   'Aprendiz Creativo'),
)

LEGACY_CATEGORY = 'results'


def get_user_level(total_points):
    for threshold, name in LEVELS:
        if total_points >= threshold:
            return name
    return LEVELS[-1][1]


def month_cycle(when):
    """YYYY-MM bucket for monthly points."""
    return f"{when:%Y-%m}"
