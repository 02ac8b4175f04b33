"""
Formatter for the user activity logging channel.
"""

import json
import logging

from django.core.serializers.json import DjangoJSONEncoder


class ActivityJSONEncoder(DjangoJSONEncoder):
    """
    DjangoJSONEncoder that renders anything else it cannot encode
    (FieldFile, bytes, memoryview...) with str().
    """

    def default(self, o):
        try:
            return super().default(o)
        except TypeError:
            if isinstance(o, memoryview):
                o = o.tobytes()
            if isinstance(o, bytes):
                return o.decode("utf-8", errors="replace")
            return str(o)


class ActivityJsonFormatter(logging.Formatter):
    """
    Render an activity record as a single JSON line.

    Records written by ActivityLogger carry their structured context in
    the ``activity`` attribute; other records are rendered with just the
    level and message.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname.lower(),
            "message": record.getMessage(),
        }
        activity = getattr(record, "activity", None)
        if activity is not None:
            payload["activity"] = activity
        return json.dumps(payload, cls=ActivityJSONEncoder)
