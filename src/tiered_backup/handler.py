"""
AWS Lambda entry point.

Configure the function handler as ``tiered_backup.handler.lambda_handler`` and
trigger it from an EventBridge schedule. The event payload is ignored; all
configuration comes from the environment.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from dotenv import find_dotenv, load_dotenv

from .deadline import Deadline
from .errors import BackupError
from .operations import Operations, OpsConfig
from .settings import create_settings_from_env

logger = logging.getLogger(__name__)

# Time kept back from the Lambda timeout to log and report a failed run
DEADLINE_MARGIN_S = 10.0


def lambda_handler(event: Any, context: Any) -> Dict[str, Any]:
    """
    Run one backup.

    Returns:
        The RunOutcome as a JSON-compatible dict

    Raises:
        BackupError: Fatal errors are re-raised so the invocation is
            recorded as failed
    """
    logging.getLogger().setLevel(logging.INFO)
    load_dotenv(find_dotenv(usecwd=True))

    try:
        settings = create_settings_from_env()
        ops = Operations(config=OpsConfig(), settings=settings)
        deadline = Deadline.from_lambda_context(context, margin_s=DEADLINE_MARGIN_S)
        outcome = ops.run_backup(deadline=deadline)
    except BackupError as e:
        logger.error(f"Backup failed: {e}")
        raise

    return outcome.model_dump(mode="json")
