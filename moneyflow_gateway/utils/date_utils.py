"""Date manipulation utilities"""

from datetime import date


def month_start(day: date) -> date:
    """First day of the calendar month containing day"""
    return day.replace(day=1)


def next_month_start(day: date) -> date:
    """First day of the calendar month after the one containing day"""
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)
