class ListResponseMixin:
    @classmethod
    def list_response(cls, engine, *args, **kwargs):
        """Wrap ``list`` results in the ``{items, count, limit, offset}`` envelope.

        ``limit`` and ``offset`` are always the last two positional arguments
        of ``list``.
        """
        items = cls.list(engine, *args, **kwargs)
        limit = kwargs.get("limit", args[-2] if len(args) >= 2 else None)
        offset = kwargs.get("offset", args[-1] if args else None)
        return {"items": items, "count": len(items), "limit": limit, "offset": offset}
