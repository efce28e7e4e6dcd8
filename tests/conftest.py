"""Shared fixtures for gh-rivet tests."""

import pytest

from gh_rivet.models import Config, Group, Preferences, WorkflowDef


def make_config(refresh_interval: int = 30) -> Config:
    """A small two-level catalog used across the suite."""
    return Config(
        repository="acme/platform",
        preferences=Preferences(refresh_interval=refresh_interval),
        groups=[
            Group(
                id="services",
                name="Services",
                description="Application services",
                workflows=["ci.yml"],
                groups=[
                    Group(
                        id="backend",
                        name="Backend",
                        workflows=["deploy.yml", "lint.yml"],
                        workflow_defs=[WorkflowDef("integration.yml", "Integration Tests")],
                        jobs=["^build", "deploy"],
                    ),
                    Group(id="frontend", name="Frontend", workflows=["web.yml"]),
                ],
            ),
            Group(id="infra", name="Infra", workflows=["terraform.yml"]),
        ],
    )


class FakeTimer:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.stopped = False

    def stop(self):
        self.stopped = True

    def fire(self):
        self.callback()


class FakeTimerFactory:
    """Records every timer it creates."""

    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, interval, callback):
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.stopped]


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def timers():
    return FakeTimerFactory()
