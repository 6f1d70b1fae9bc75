import logging
import json
import sys


# Structured fields that storage operations attach via `extra=`
CONTEXT_FIELDS = ('bucket', 'blob', 'key_sha256')


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Bucket, object and key fingerprint are copied through when the caller
    passed them in `extra`; raw key material never reaches a record.
    """

    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_json_logging(level=logging.INFO, stream=None, json_format: bool = True):
    """Attach a stderr handler to the root logger.

    Sample output goes to stdout, so log records must stay on stderr.
    Calling this again replaces the handler it installed before.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    for existing in list(logger.handlers):
        if getattr(existing, '_csek_handler', False):
            logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler._csek_handler = True
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter('%(levelname)s %(name)s: %(message)s'))
    logger.addHandler(handler)

    return logger
