"""Per-user task queues with one worker each

Every user id gets a bounded queue and a worker task that owns one
ChatGPTClient and the user's current Conversation. Tasks of the same user
are handled one at a time in arrival order; different users run
concurrently.
"""

import asyncio
import inspect
import logging
from typing import Callable, Dict, Optional

from chatgpt_client import ChatGPTClient
from errors import PreconditionViolation, TimeoutExceeded
from settings import (
    CF_CLEARANCE,
    CHATGPT_EMAIL,
    CHATGPT_PASSWORD,
    QUEUE_CAPACITY,
    RELAY_PROXY,
    USER_AGENT,
)

from .task import RESET_REPLY, Task, TaskHandler

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], ChatGPTClient]

# Queued after the last task to stop a worker
_STOP = object()


async def _call_handler(handler: TaskHandler, reply: str, error: Optional[BaseException]) -> None:
    result = handler(reply, error)
    if inspect.isawaitable(result):
        await result


class TaskManager:
    """Routes tasks to per-user workers"""

    def __init__(
        self,
        session_token: str = "",
        client_factory: Optional[ClientFactory] = None,
        queue_capacity: int = QUEUE_CAPACITY,
    ):
        """Initialize task manager

        Args:
            session_token: Session token used by the default client factory
            client_factory: Builds the client of a new worker
            queue_capacity: Pending tasks per user before send_task blocks
        """
        self.session_token = session_token
        self.client_factory = client_factory or self._default_client
        self.queue_capacity = queue_capacity

        self._queues: Dict[str, asyncio.Queue] = {}
        self._workers: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    def _default_client(self) -> ChatGPTClient:
        return ChatGPTClient(
            session_token=self.session_token,
            email=CHATGPT_EMAIL,
            password=CHATGPT_PASSWORD,
            cf_clearance=CF_CLEARANCE,
            user_agent=USER_AGENT,
            proxy=RELAY_PROXY,
        )

    @property
    def user_count(self) -> int:
        return len(self._queues)

    def pending(self, user_id: str) -> int:
        """Number of queued (not yet started) tasks of a user"""
        queue = self._queues.get(user_id)
        return queue.qsize() if queue is not None else 0

    async def send_task(self, task: Task) -> None:
        """Enqueue a task, starting the user's worker on first use

        Blocks while the user's queue is full. The map lock is released
        before waiting, so other users are never held up.

        Raises:
            PreconditionViolation: If the manager was shut down
        """
        async with self._lock:
            if self._closed:
                raise PreconditionViolation("task manager is shut down")

            queue = self._queues.get(task.user_id)
            if queue is None:
                queue = asyncio.Queue(maxsize=self.queue_capacity)
                self._queues[task.user_id] = queue
                self._workers[task.user_id] = asyncio.create_task(
                    self._worker(task.user_id, queue),
                    name=f"relay-worker-{task.user_id}",
                )
                logger.debug(f"Started worker for {task.user_id}")

        await queue.put(task)

    async def _worker(self, user_id: str, queue: asyncio.Queue) -> None:
        client = self.client_factory()
        conversation = client.new_conversation()
        try:
            while True:
                task = await queue.get()
                if task is _STOP:
                    break
                if task.is_reset:
                    conversation = client.new_conversation()
                try:
                    await self._process(conversation, task)
                except Exception:
                    logger.warning(f"Failed while processing task of {user_id}", exc_info=True)
        finally:
            await client.aclose()
            logger.debug(f"Worker for {user_id} stopped")

    async def _process(self, conversation, task: Task) -> None:
        logger.debug(f"Handle task of {task.user_id}: {len(task.content)} chars")

        if task.is_reset:
            await _call_handler(task.handler, RESET_REPLY, None)
            return

        try:
            reply = await asyncio.wait_for(conversation.send(task.content), task.timeout)
        except asyncio.TimeoutError:
            error = TimeoutExceeded(f"no reply within {task.timeout}s")
            await _call_handler(task.handler, "", error)
        except Exception as e:
            await _call_handler(task.handler, "", e)
        else:
            await _call_handler(task.handler, reply, None)

    async def shutdown(self) -> None:
        """Stop accepting tasks, finish queued ones and stop the workers"""
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            queues = list(self._queues.values())
            workers = list(self._workers.values())

        for queue in queues:
            await queue.put(_STOP)
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)
        logger.info(f"Task manager stopped ({len(workers)} workers)")
