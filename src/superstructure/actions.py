"""
Cooperative actions and the scheduler that advances them.

An action is a small state object advanced once per tick: initialize() when
it is scheduled, execute() then is_finished() on every tick, end() once.
An action that is finished right after initialize() completes in the call
that scheduled it. Waiting is expressed by is_finished() returning False;
nothing ever blocks.

Each action declares the actuators it requires. Scheduling an action that
requires an actuator already owned by a running action cancels that action
first, so every actuator has at most one owner and a cancelled action never
writes again.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from .control import Debouncer

logger = logging.getLogger(__name__)


class Action:
    def __init__(self, requirements: Iterable = (), name: Optional[str] = None):
        self.requirements = frozenset(requirements)
        self.name = name or type(self).__name__

    def initialize(self):
        pass

    def execute(self):
        pass

    def is_finished(self) -> bool:
        return False

    def end(self, interrupted: bool):
        pass

    def with_name(self, name: str) -> 'Action':
        self.name = name
        return self

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class InstantAction(Action):
    """Runs a function once when scheduled and finishes."""

    def __init__(self, fn: Callable[[], None], requirements: Iterable = (), name: Optional[str] = None):
        super().__init__(requirements, name)
        self.fn = fn

    def initialize(self):
        self.fn()

    def is_finished(self) -> bool:
        return True


class RunAction(Action):
    """Runs a function on start and on every tick until cancelled."""

    def __init__(self, fn: Callable[[], None], requirements: Iterable = (),
                 on_end: Optional[Callable[[], None]] = None, name: Optional[str] = None):
        super().__init__(requirements, name)
        self.fn = fn
        self.on_end = on_end

    def initialize(self):
        self.fn()

    def execute(self):
        self.fn()

    def end(self, interrupted: bool):
        if self.on_end is not None:
            self.on_end()


class WaitUntilAction(Action):
    def __init__(self, condition: Callable[[], bool], name: Optional[str] = None):
        super().__init__((), name)
        self.condition = condition
        self._done = False

    def initialize(self):
        self._done = False

    def execute(self):
        self._done = bool(self.condition())

    def is_finished(self) -> bool:
        return self._done


class WaitForRisingEdgeAction(Action):
    """
    Finishes on the first tick where `source` reads True after having read
    False. A source that is already True must drop before it can trigger.
    """

    def __init__(self, source: Callable[[], bool], name: Optional[str] = None):
        super().__init__((), name)
        self.source = source
        self._previous = True
        self._done = False

    def initialize(self):
        self._previous = bool(self.source())
        self._done = False

    def execute(self):
        value = bool(self.source())
        if value and not self._previous:
            self._done = True
        self._previous = value

    def is_finished(self) -> bool:
        return self._done


class DebouncedWaitAction(Action):
    """Finishes once `source` has read `expected` on every tick of the window."""

    def __init__(self, source: Callable[[], bool], expected: bool, window_seconds: float,
                 period_seconds: float, name: Optional[str] = None):
        super().__init__((), name)
        self.source = source
        self.debouncer = Debouncer(window_seconds, period_seconds, expected)
        self._done = False

    def initialize(self):
        self.debouncer.reset()
        self._done = False

    def execute(self):
        self._done = self.debouncer.calculate(bool(self.source()))

    def is_finished(self) -> bool:
        return self._done


class DeferredAction(Action):
    """
    Builds its inner action only when started, so the choice can depend on
    state at that moment. The requirements must be declared up front.
    """

    def __init__(self, supplier: Callable[[], Action], requirements: Iterable, name: Optional[str] = None):
        super().__init__(requirements, name)
        self.supplier = supplier
        self.inner: Optional[Action] = None

    def initialize(self):
        self.inner = self.supplier()
        if not self.inner.requirements <= self.requirements:
            raise ValueError(f"{self.inner} requires actuators not declared by {self.name}")
        self.inner.initialize()

    def execute(self):
        self.inner.execute()

    def is_finished(self) -> bool:
        return self.inner.is_finished()

    def end(self, interrupted: bool):
        if self.inner is not None:
            self.inner.end(interrupted)


class SequentialAction(Action):
    """
    Runs its children one after the other through an explicit step index.
    A step that is already finished once started (an instant step) hands over
    to the next step straight away; a waiting step holds the sequence until
    a later tick.
    """

    def __init__(self, *actions: Action, name: Optional[str] = None):
        requirements = set()
        for action in actions:
            requirements |= action.requirements
        super().__init__(requirements, name)
        self.actions = list(actions)
        self.index = 0

    @property
    def current(self) -> Optional[Action]:
        return self.actions[self.index] if self.index < len(self.actions) else None

    def _start_current(self):
        while self.current is not None:
            self.current.initialize()
            if not self.current.is_finished():
                return
            self.current.end(False)
            self.index += 1

    def initialize(self):
        self.index = 0
        self._start_current()

    def execute(self):
        action = self.current
        if action is None:
            return
        action.execute()
        if action.is_finished():
            action.end(False)
            self.index += 1
            self._start_current()

    def is_finished(self) -> bool:
        return self.index >= len(self.actions)

    def end(self, interrupted: bool):
        if interrupted and self.current is not None:
            self.current.end(True)


class ParallelAction(Action):
    """Starts all children in the same call and finishes when every child has finished."""

    def __init__(self, *actions: Action, name: Optional[str] = None):
        requirements = set()
        for action in actions:
            if requirements & action.requirements:
                raise ValueError(f"{action} shares actuators with another action in the same group")
            requirements |= action.requirements
        super().__init__(requirements, name)
        self.actions = list(actions)
        self._running: List[Action] = []

    def initialize(self):
        self._running = []
        for action in self.actions:
            action.initialize()
            if action.is_finished():
                action.end(False)
            else:
                self._running.append(action)

    def execute(self):
        for action in list(self._running):
            action.execute()
            if action.is_finished():
                action.end(False)
                self._running.remove(action)

    def is_finished(self) -> bool:
        return not self._running

    def end(self, interrupted: bool):
        if interrupted:
            for action in self._running:
                action.end(True)
        self._running = []


class ActionScheduler:
    """
    Ticks the registered actuator loops and advances the active actions.
    tick() must be called once per control period.
    """

    def __init__(self):
        self._loops = []
        self._actions: List[Action] = []
        self._owners: Dict[object, Action] = {}
        self.tick_count = 0

    def register(self, *loops):
        for loop in loops:
            if loop not in self._loops:
                self._loops.append(loop)

    @property
    def active_actions(self) -> List[Action]:
        return list(self._actions)

    def is_scheduled(self, action: Action) -> bool:
        return action in self._actions

    def owner_of(self, actuator) -> Optional[Action]:
        return self._owners.get(actuator)

    def schedule(self, action: Action) -> Action:
        if action in self._actions:
            return action

        for requirement in action.requirements:
            owner = self._owners.get(requirement)
            if owner is not None and owner in self._actions:
                logger.info(f"{action.name} preempts {owner.name}")
                self.cancel(owner)

        self._actions.append(action)
        for requirement in action.requirements:
            self._owners[requirement] = action

        logger.debug(f"Scheduled {action.name}")
        action.initialize()
        if action.is_finished():
            self._release(action)
            action.end(False)
        return action

    def cancel(self, action: Action):
        if action not in self._actions:
            return
        self._release(action)
        action.end(True)
        logger.debug(f"Cancelled {action.name}")

    def cancel_all(self):
        for action in list(self._actions):
            self.cancel(action)

    def _release(self, action: Action):
        self._actions.remove(action)
        for requirement in action.requirements:
            if self._owners.get(requirement) is action:
                del self._owners[requirement]

    def tick(self):
        self.tick_count += 1
        for loop in self._loops:
            loop.periodic()

        for action in list(self._actions):
            # an action earlier in this pass may have preempted it
            if action not in self._actions:
                continue
            action.execute()
            if action.is_finished():
                self._release(action)
                action.end(False)
                logger.debug(f"Finished {action.name}")
