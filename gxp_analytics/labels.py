"""Month names used for period labels and filter options."""

from typing import Dict, Tuple, Union

from .config import MonthLabelLocale

MONTH_ABBREVIATIONS: Dict[MonthLabelLocale, Tuple[str, ...]] = {
    MonthLabelLocale.EN: (
        "Jan", "Feb", "Mar", "Apr", "May", "Jun",
        "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    ),
    MonthLabelLocale.ES: (
        "ene", "feb", "mar", "abr", "may", "jun",
        "jul", "ago", "sept", "oct", "nov", "dic",
    ),
}  # fmt: skip

MONTH_NAMES: Dict[MonthLabelLocale, Tuple[str, ...]] = {
    MonthLabelLocale.EN: (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
    MonthLabelLocale.ES: (
        "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
        "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
    ),
}  # fmt: skip

ALL_MONTHS_LABEL = {
    MonthLabelLocale.EN: "All months",
    MonthLabelLocale.ES: "Todos los meses",
}


def month_label(
    month_index: int,
    locale: Union[MonthLabelLocale, str] = MonthLabelLocale.EN,
    short: bool = True,
) -> str:
    """
    Localized name of a zero-based month index.

    Args:
        month_index: 0 (January) to 11 (December)
        locale: Label locale
        short: Abbreviated name if True

    Returns:
        Month label
    """
    locale = MonthLabelLocale(locale)
    table = MONTH_ABBREVIATIONS if short else MONTH_NAMES
    return table[locale][month_index]
