from app.errors import InvalidRequestError


def _sort_key(value):
    # None sorts last ascending; enums compare by value
    value = getattr(value, "value", value)
    return (value is None, value)


def apply_ordering(items, order_by, order_dir, allowed_columns):
    if order_by not in allowed_columns:
        raise InvalidRequestError(
            f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}"
        )
    return sorted(
        items,
        key=lambda item: _sort_key(getattr(item, order_by)),
        reverse=order_dir == "desc",
    )


def apply_pagination(items, limit, offset):
    return list(items)[offset : offset + limit]


def coerce_enum(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidRequestError(
            f"Invalid {enum_cls.__name__}: {value}",
            {"allowed": [member.value for member in enum_cls]},
        ) from exc
