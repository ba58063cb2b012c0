import logging

logger = logging.getLogger("kopfolio")
