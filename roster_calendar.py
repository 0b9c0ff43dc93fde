# roster_calendar.py

from datetime import date, datetime, timedelta
import calendar

MONTH_NAMES = list(calendar.month_name)[1:]
PROGRAMMER_DESIGNATIONS = ('Programmer Analyst', 'Programmer Analyst Trainee')
DESIGNATIONS = PROGRAMMER_DESIGNATIONS + ('Technical Lead', 'Manager', 'Senior Manager', 'System Administrator')
MIN_SELECTED_DAYS = 12


class SelectionPolicyError(ValueError):
    """Raised when a set of selected dates breaks the booking rules."""


def parse_selected_date(value, tz=None):
    """Accepts 'YYYY-MM-DD' or a full ISO timestamp and returns the calendar date.

    Timestamps carrying an offset are converted to `tz`, when given, before the date is taken.
    """
    if isinstance(value, datetime): stamp = value
    elif isinstance(value, date): return value
    else:
        text = str(value).strip()
        if text.endswith('Z'): text = text[:-1] + '+00:00'
        if len(text) == 10: return date.fromisoformat(text)
        stamp = datetime.fromisoformat(text)
    if tz is not None and stamp.tzinfo is not None: stamp = stamp.astimezone(tz)
    return stamp.date()

def normalize_dates(values, tz=None):
    return sorted({parse_selected_date(v, tz) for v in values})

def is_working_day(d):
    return d.weekday() < 5

def working_days(year, month):
    last_day = calendar.monthrange(year, month)[1]
    return [date(year, month, day) for day in range(1, last_day + 1) if is_working_day(date(year, month, day))]

def month_window(today):
    """Working-day counts for the month containing `today`. Today itself is not elapsed."""
    days = working_days(today.year, today.month)
    elapsed = sum(1 for d in days if d < today)
    return {"year": today.year, "month": today.month, "workingDaysInMonth": len(days), "elapsedWorkingDays": elapsed, "remainingWorkingDays": len(days) - elapsed}

def is_programmer(designation):
    return designation in PROGRAMMER_DESIGNATIONS

def selection_bounds(designation, today):
    remaining = month_window(today)['remainingWorkingDays']
    if is_programmer(designation): return remaining, remaining
    return MIN_SELECTED_DAYS, remaining

def is_selectable(d, today):
    return is_working_day(d) and d >= today and d.year == today.year and d.month == today.month

def check_selection(designation, selected_dates, today, has_attachment=False, tz=None):
    """Validates a draft's dates; returns them sorted and de-duplicated.

    Every date must be selectable. An attached image waives the day-count rule.
    """
    dates = normalize_dates(selected_dates, tz)
    blocked = [d.isoformat() for d in dates if not is_selectable(d, today)]
    if blocked: raise SelectionPolicyError(f"Dates are not selectable working days of the current month: {', '.join(blocked)}")
    low, high = selection_bounds(designation, today)
    if has_attachment or low <= len(dates) <= high: return dates
    if is_programmer(designation): raise SelectionPolicyError(f"Please select exactly {high} working days or attach an image.")
    raise SelectionPolicyError(f"Please select at least {low} working days, up to {high} days, or attach an image.")

def start_of_week(d):
    # weeks run Sunday..Saturday
    return d - timedelta(days=(d.weekday() + 1) % 7)

def format_date_short(d):
    return f"{MONTH_NAMES[d.month - 1]} {d.day}, {d.year}"

def _overlaps_month(week_start, today):
    return any((week_start + timedelta(days=i)).month == today.month and (week_start + timedelta(days=i)).year == today.year for i in range(7))

def week_view(anchor, today, selected=()):
    week_start = start_of_week(anchor)
    week_end = week_start + timedelta(days=6)
    chosen = set(normalize_dates(selected))
    days = []
    for i in range(7):
        d = week_start + timedelta(days=i)
        days.append({
            "date": d.isoformat(), "weekday": d.strftime('%a'), "day": d.day,
            "isWeekend": not is_working_day(d), "isPast": d < today, "isToday": d == today,
            "inCurrentMonth": d.year == today.year and d.month == today.month,
            "selectable": is_selectable(d, today), "selected": d in chosen,
        })
    return {
        "weekStart": week_start.isoformat(), "weekEnd": week_end.isoformat(),
        "label": f"{format_date_short(week_start)} - {format_date_short(week_end)}",
        "canGoPrevious": _overlaps_month(week_start - timedelta(days=7), today),
        "canGoNext": _overlaps_month(week_start + timedelta(days=7), today),
        "previousWeek": (week_start - timedelta(days=7)).isoformat(),
        "nextWeek": (week_start + timedelta(days=7)).isoformat(),
        "days": days,
    }
