from datetime import date, timedelta

LABEL_WEEKLY = "weekly"    # 'Mon', 'Tue', ...
LABEL_MONTHLY = "monthly"  # 'Dec 18', 'Feb 1', ...
LABEL_MODES = (LABEL_WEEKLY, LABEL_MONTHLY)

# English abbreviations, independent of the process locale (strftime's %a / %b are not)
WEEKDAY_ABBR = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def date_window(start: date, days: int) -> list:
    """Return `days` consecutive calendar dates, the first one being `start`."""
    return [start + timedelta(days=i) for i in range(days)]


def day_label(d: date, label_mode: str = LABEL_WEEKLY) -> str:
    """
    Short chart-axis label for a date.
    weekly  -> weekday abbreviation ('Thu')
    monthly -> month abbreviation + unpadded day ('Feb 1')
    """
    if label_mode == LABEL_WEEKLY:
        return WEEKDAY_ABBR[d.weekday()]
    if label_mode == LABEL_MONTHLY:
        return f"{MONTH_ABBR[d.month - 1]} {d.day}"
    raise ValueError(f"Unknown label mode {label_mode!r}; expected one of {LABEL_MODES}")

