"""XP level curve and rating tiers."""

MAX_LEVEL = 100

RATING_TIERS = [
    {'min': 0, 'max': 999, 'name': 'Bronze'},
    {'min': 1000, 'max': 1199, 'name': 'Silver'},
    {'min': 1200, 'max': 1399, 'name': 'Gold'},
    {'min': 1400, 'max': 1599, 'name': 'Platinum'},
    {'min': 1600, 'max': 1799, 'name': 'Diamond'},
    {'min': 1800, 'max': 1999, 'name': 'Master'},
    {'min': 2000, 'max': 2199, 'name': 'Grandmaster'},
    {'min': 2200, 'max': 9999, 'name': 'Legend'},
]


def xp_for_level(level):
    """Total XP required to reach ``level``."""
    if level <= 1:
        return 0
    if level <= 5:
        return (level - 1) * 250
    if level <= 10:
        return 1000 + (level - 5) * 800
    if level <= 20:
        return 5000 + (level - 10) * 1500
    if level <= 30:
        return 20000 + (level - 20) * 3000
    if level <= 40:
        return 50000 + (level - 30) * 5000
    return 100000 + (level - 40) * 10000


def level_from_xp(xp):
    level = 1
    while level < MAX_LEVEL and xp_for_level(level + 1) <= xp:
        level += 1
    return level


def rating_tier(rating):
    for tier in RATING_TIERS:
        if tier['min'] <= rating <= tier['max']:
            return tier['name']
    return RATING_TIERS[0]['name']
