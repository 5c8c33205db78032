"""Shared fixtures: a simulation environment, a silent event log, and a runner."""

import pytest
from asimpy import Environment, Process

from quorumsim.event_log import EventLog


class Script(Process):
    """Runs one coroutine inside the simulation and keeps its result."""

    def init(self, fn):
        self.fn = fn
        self.result = None

    async def run(self):
        self.result = await self.fn()


@pytest.fixture
def env():
    return Environment()


@pytest.fixture
def events(env):
    return EventLog(env, echo=False)


@pytest.fixture
def run(env):
    """Run ``fn()`` to completion; errors it raises propagate out of env.run()."""

    def _run(fn):
        script = Script(env, fn)
        env.run()
        return script.result

    return _run
