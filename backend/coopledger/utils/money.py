from decimal import Decimal, ROUND_HALF_UP

Q2 = Decimal("0.01")


def d2(x: Decimal) -> Decimal:
    return x.quantize(Q2, rounding=ROUND_HALF_UP)


def to_dec(v) -> Decimal:
    if v is None:
        return Decimal("0")
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


def to_dec_or_none(v) -> Decimal | None:
    if v is None:
        return None
    return to_dec(v)
