# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


import csv
from collections import defaultdict
from itertools import count
from typing import Callable, List

from .atom_event import AtomEvent
from .event_state import EventState


class EventRecorder:
    """Recorder used to record events to csv file."""
    def __init__(self, path: str):
        self._fp = open(path, "wt+", newline='')
        self._writer = csv.writer(self._fp)
        self._writer.writerow(['episode', 'tick', 'event_type', 'payload'])

    def record(self, o: dict):
        self._writer.writerow([o['episode'], o["tick"], o["type"], o["payload"]])

    def close(self):
        if self._fp is not None and not self._fp.closed:
            self._fp.close()

    def __del__(self):
        self.close()


class EventBuffer:
    """
    EventBuffer used to hold events, and dispatch them at specified tick.

    NOTE:
        Insert order decides the processing order of the events in the same tick.
        Events inserted by a handler for the tick being executed are processed in the same call.

    Args:
        disable_finished_events (bool): Do not keep executed events, "get_finished_events"
            will return an empty list.
        record_events (bool): If record finished events into csv file.
        record_path (str): Where to save the csv file.
    """

    def __init__(self, disable_finished_events: bool = False, record_events: bool = False, record_path: str = None):
        self._pending_events = defaultdict(list)
        self._handlers = defaultdict(list)

        # used to hold all the events that been processed
        self._finished_events = []
        self._id_counter = count()

        self._disable_finished_events = disable_finished_events

        self._record_events = record_events

        self._recorder = None
        self._recorder_ep = None

        if self._record_events:
            if record_path is None:
                raise ValueError("Invalid path to save finished events.")

            self._recorder = EventRecorder(record_path)

    def get_finished_events(self) -> List[AtomEvent]:
        """Get all the processed events, call this function before reset method.

        Returns:
            List[AtomEvent]: List of event object.
        """
        return self._finished_events

    def get_pending_events(self, tick: int) -> List[AtomEvent]:
        """Get pending event at specified tick.

        Args:
            tick (int): tick of events to get.

        Returns:
            List[AtomEvent]: List of event object.
        """
        return list(self._pending_events.get(tick, []))

    def reset(self):
        """Reset internal states, this method will clear all events.

        NOTE:
            After reset the get_finished_event method will return empty list.
        """
        self._finished_events.clear()
        self._pending_events.clear()

        if self._record_events:
            if self._recorder_ep is not None:
                self._recorder_ep += 1
            else:
                self._recorder_ep = 0

    def close(self):
        """Flush and close the event recorder, if any."""
        if self._recorder is not None:
            self._recorder.close()

    def gen_atom_event(self, tick: int, event_type: object, payload: object = None) -> AtomEvent:
        """Generate an atom event.

        Args:
            tick (int): Tick that the event will be processed.
            event_type (object): Type of this event.
            payload (object): Payload of event, used to pass data to handlers.

        Returns:
            AtomEvent: Atom event object
        """
        return AtomEvent(next(self._id_counter), tick, event_type, payload)

    def register_event_handler(self, event_type: object, handler: Callable):
        """Register an event with handler, when there is an event need to be processed,
        EventBuffer will invoke the handler if there are any event's type match specified at each tick.

        NOTE:
            Callback function should only hold one parameter that is the event object.

        Args:
            event_type (object): Type of event that the handler want to process.
            handler (Callable): Handler that will process the event.
        """
        self._handlers[event_type].append(handler)

    def insert_event(self, event: AtomEvent):
        """Insert an event to the pending queue.

        Args:
            event (AtomEvent): Event to insert, usually get event object from gen_atom_event.
        """
        self._pending_events[event.tick].append(event)

    def execute(self, tick: int) -> List[AtomEvent]:
        """Process and dispatch event by tick.

        Args:
            tick (int): Tick used to process events.

        Returns:
            List[AtomEvent]: Events executed at this tick.
        """
        executed = []
        cur_events_list = self._pending_events.get(tick)

        while cur_events_list:
            event = cur_events_list.pop(0)
            event.state = EventState.EXECUTING

            # Invoke handlers.
            for handler in self._handlers.get(event.event_type, []):
                handler(event)

            event.state = EventState.FINISHED
            executed.append(event)

            if not self._disable_finished_events:
                self._finished_events.append(event)

            if self._record_events:
                if self._recorder_ep is None:
                    self._recorder_ep = 0

                self._recorder.record({
                    "episode": self._recorder_ep,
                    "tick": event.tick,
                    "type": str(event.event_type),
                    "payload": event.payload})

        self._pending_events.pop(tick, None)

        return executed
