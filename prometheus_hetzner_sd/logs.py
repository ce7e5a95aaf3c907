"""Logging setup shared by the command line and the server"""
import logging

PRETTY_FORMAT = "%(asctime)s %(levelname)8s: (%(funcName)s) %(message)s"
LOGFMT_FORMAT = 'ts=%(asctime)s level=%(levelname)s caller=%(module)s:%(lineno)d msg="%(message)s"'


def python_log_level(log_level: str) -> str:
    """Translate a log.level value into the name of a logging level"""
    log_level = log_level.upper()
    if log_level == "WARN":
        return "WARNING"
    return log_level


def setup_logging(log_level: str, pretty: bool = False) -> None:
    """Setup logging format and level

    Pretty output is meant for humans, the default logfmt style lines are
    easier to parse for log shippers
    """
    logging.basicConfig(
        level=python_log_level(log_level),
        format=PRETTY_FORMAT if pretty else LOGFMT_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S" if pretty else "%Y-%m-%dT%H:%M:%S%z",
    )
    logging.getLogger("prometheus_hetzner_sd").setLevel(python_log_level(log_level))

    # httpx logs every single request at info
    if python_log_level(log_level) != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)
