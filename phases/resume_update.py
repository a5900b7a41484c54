"""
The resume update workflow.

One run walks the steps below in order against a fresh browser session. A
failed run is retried as a whole (new browser, new page) by the process-level
retrier; individual steps retry themselves with the operation-level retrier.

    navigate_login -> authenticate -> dismiss_popup -> navigate_mypage -> trigger_update -> done
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from actions.context import ActionContext
from actions.login import authenticate, dismiss_login_popup, navigate_to_login_page
from actions.update_resume import navigate_to_mypage, update_career_info
from config import AppConfig
from core.adaptive_timeout import AdaptiveTimeoutEstimator
from core.browser import BrowserSession
from core.notifier import TelegramNotifier
from core.resilience import OperationRetrier, ProcessRetrier, RetryPolicy, SleepFn
from core.validation import Credentials

logger = logging.getLogger(__name__)


class WorkflowStep(str, Enum):
    NAVIGATE_LOGIN = "navigate_login"
    AUTHENTICATE = "authenticate"
    DISMISS_POPUP = "dismiss_popup"
    NAVIGATE_MYPAGE = "navigate_mypage"
    TRIGGER_UPDATE = "trigger_update"
    DONE = "done"


NEXT_STEP: Dict[WorkflowStep, WorkflowStep] = {
    WorkflowStep.NAVIGATE_LOGIN: WorkflowStep.AUTHENTICATE,
    WorkflowStep.AUTHENTICATE: WorkflowStep.DISMISS_POPUP,
    WorkflowStep.DISMISS_POPUP: WorkflowStep.NAVIGATE_MYPAGE,
    WorkflowStep.NAVIGATE_MYPAGE: WorkflowStep.TRIGGER_UPDATE,
    WorkflowStep.TRIGGER_UPDATE: WorkflowStep.DONE,
}


class ResumeUpdateWorkflow:
    """Runs the resume update steps with process-level retry around them."""

    def __init__(
        self,
        app_config: AppConfig,
        credentials: Credentials,
        session: BrowserSession,
        estimator: AdaptiveTimeoutEstimator,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.app_config = app_config
        self.credentials = credentials
        self.session = session
        self.estimator = estimator
        self.sleep = sleep
        self.operation_retrier = OperationRetrier(sleep=sleep)
        self.process_retrier = ProcessRetrier(sleep=sleep)
        self.attempts = 0
        self.current_step: Optional[WorkflowStep] = None

    def _handlers(self, ctx: ActionContext) -> Dict[WorkflowStep, Callable[[], Awaitable[None]]]:
        return {
            WorkflowStep.NAVIGATE_LOGIN: lambda: navigate_to_login_page(ctx),
            WorkflowStep.AUTHENTICATE: lambda: authenticate(
                ctx, self.credentials.jobkorea_id, self.credentials.jobkorea_pwd
            ),
            WorkflowStep.DISMISS_POPUP: lambda: dismiss_login_popup(ctx),
            WorkflowStep.NAVIGATE_MYPAGE: lambda: navigate_to_mypage(ctx),
            WorkflowStep.TRIGGER_UPDATE: lambda: update_career_info(ctx),
        }

    async def run_steps(self) -> None:
        """One complete pass over the steps on a newly started browser session."""
        self.attempts += 1
        max_attempts = self.app_config.retry.max_process_retries
        logger.info(f"Starting resume update process (attempt {self.attempts}/{max_attempts})")

        page = await self.session.start()
        ctx = ActionContext(
            page=page,
            app_config=self.app_config,
            estimator=self.estimator,
            retrier=self.operation_retrier,
        )
        handlers = self._handlers(ctx)

        step = WorkflowStep.NAVIGATE_LOGIN
        while step is not WorkflowStep.DONE:
            self.current_step = step
            logger.info(f"Step: {step.value}")
            await handlers[step]()
            step = NEXT_STEP[step]
        self.current_step = WorkflowStep.DONE
        logger.info("Resume update process completed.")

    async def restart_session(self) -> None:
        logger.info("Restarting browser...")
        await self.session.close()
        await self.sleep(self.app_config.retry.restart_delay_ms / 1000.0)

    async def execute(self) -> None:
        """Run the workflow, restarting the browser between failed attempts.

        Raises:
            Exception: The error of the last attempt once every attempt failed.
        """
        policy = RetryPolicy.for_process(self.app_config.retry)
        await self.process_retrier.with_process_retry(self.run_steps, self.restart_session, policy)


async def run_resume_update(
    app_config: AppConfig,
    credentials: Credentials,
    session: BrowserSession,
    notifier: Optional[TelegramNotifier] = None,
    estimator: Optional[AdaptiveTimeoutEstimator] = None,
    sleep: SleepFn = asyncio.sleep,
) -> int:
    """
    Run the workflow, report the outcome on Telegram and release the browser.

    The estimator lives for exactly one run and is shared by every step and by
    the notifier.

    Returns:
        Process exit code: 0 on success, 1 on failure.
    """
    estimator = estimator or AdaptiveTimeoutEstimator(app_config.adaptive_timeout)
    notifier = notifier or TelegramNotifier(
        credentials.telegram_token,
        credentials.telegram_chat_id,
        notification_config=app_config.notification,
        estimator=estimator,
        retrier=OperationRetrier(sleep=sleep),
    )
    workflow = ResumeUpdateWorkflow(app_config, credentials, session, estimator, sleep=sleep)

    try:
        await workflow.execute()
    except Exception as e:
        logger.error(f"Resume update failed after {workflow.attempts} attempt(s): {e}")
        notify_result, _ = await asyncio.gather(
            notifier.notify_failure(e, workflow.attempts),
            session.close(),
            return_exceptions=True,
        )
        if isinstance(notify_result, Exception):
            logger.warning(f"Failed to send the failure notification. Check the Telegram settings: {notify_result}")
        return 1

    notify_result, _ = await asyncio.gather(
        notifier.notify_success(workflow.attempts - 1),
        session.close(),
        return_exceptions=True,
    )
    if isinstance(notify_result, Exception):
        logger.warning(f"Failed to send the success notification. Check the Telegram settings: {notify_result}")
    return 0
