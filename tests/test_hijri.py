from datetime import date

from salaatime_cli.hijri import approximate_hijri


def test_epoch_maps_to_ramadan_1420() -> None:
    hijri = approximate_hijri(date(2000, 1, 1))

    assert (hijri.year, hijri.month) == (1420, 9)
    assert str(hijri).endswith("Ram 1420")


def test_estimate_stays_close_over_decades() -> None:
    # 1 Ramadan 1445 fell on 2024-03-11.
    hijri = approximate_hijri(date(2024, 3, 11))

    assert hijri.year == 1445
    assert hijri.month in (8, 9)


def test_offset_moves_the_estimate() -> None:
    base = approximate_hijri(date(2024, 3, 11))
    shifted = approximate_hijri(date(2024, 3, 11), offset=30)

    assert (shifted.year, shifted.month) != (base.year, base.month)
