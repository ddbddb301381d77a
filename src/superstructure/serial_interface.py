import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

import serial

from .exceptions import CommandError, CommandTimeoutError, DeviceNotFoundError

logger = logging.getLogger(__name__)


class ReplyStatus(Enum):
    OK = 'ok'
    ERROR = 'error'
    TIMEOUT = 'timeout'
    BUSY = 'busy'


class BoardLogLevel(Enum):
    DEBUG = 'debug'
    INFO = 'info'
    WARNING = 'warning'
    ERROR = 'error'


# Lines the board prints on its own start with one of these prefixes
LOG_LEVEL_PREFIXES = {
    "D)": BoardLogLevel.DEBUG,
    "I)": BoardLogLevel.INFO,
    "W)": BoardLogLevel.WARNING,
    "E)": BoardLogLevel.ERROR,
}


def split_log_line(line: str) -> Tuple[Optional[BoardLogLevel], str]:
    if len(line) < 2:
        return None, ''
    return LOG_LEVEL_PREFIXES.get(line[:2]), line[2:]


def parse_reply_line(line: str) -> Tuple[Optional[ReplyStatus], str]:
    """
    Recognizes the line that terminates a reply.
    :return: (status, error message) or (None, '') for a payload line
    """
    lowered = line.lower()
    if lowered.startswith("ok"):
        return ReplyStatus.OK, ''
    if lowered.startswith("busy"):
        return ReplyStatus.BUSY, ''
    if lowered.startswith("error"):
        _, _, msg = line.partition(":")
        return ReplyStatus.ERROR, msg.strip()
    return None, ''


@dataclass
class PendingReply:
    command: str
    payload: str = ""
    status: Optional[ReplyStatus] = None
    error_msg: str = ""


class SerialInterface:
    """
    Line based link to the motor-controller board.

    Commands are single lines ("M3 C1 V2.500"); the board answers with zero
    or more payload lines followed by "ok", "busy" or "error: <msg>". One
    command is in flight at a time. Replies must arrive within a fraction of
    the control period, so the default timeout is short.
    """

    def __init__(self, port: str, baud_rate: int = 921600,
                 log_msg_callback: Optional[Callable] = None,
                 unsolicited_msg_callback: Optional[Callable] = None,
                 reconnect_timeout: float = 5):
        """
        Opens the serial port and starts the background reader.
        :param port: Serial port name (e.g., 'COM3' or '/dev/ttyACM0').
        :param baud_rate: Serial baud rate.
        :param log_msg_callback: called with (BoardLogLevel, msg) for board log lines
        :param unsolicited_msg_callback: called with lines that arrive while no command is pending
        """
        self.port = port
        self.baud_rate = baud_rate
        self.reconnect_timeout = reconnect_timeout
        self.serial = None
        self.log_msg_callback = log_msg_callback
        self.unsolicited_msg_callback = unsolicited_msg_callback
        self.timeouts = 0

        self._lock = threading.Lock()
        self._reply_ready = threading.Condition(self._lock)
        self._pending: Optional[PendingReply] = None
        self._closed = False

        self.connect(self.reconnect_timeout)

        self._reader_thread = threading.Thread(target=self._reader_loop, name=f"board-reader({port})",
                                               daemon=True)
        self._reader_thread.start()

    @property
    def is_open(self) -> bool:
        return self.serial is not None and self.serial.is_open

    def connect(self, timeout: float) -> bool:
        """
        Opens the port, retrying until `timeout` seconds have passed.
        :raises DeviceNotFoundError: if the port never opens
        """
        logger.info(f"Connecting to motor board on '{self.port}'...")
        deadline = time.monotonic() + timeout
        while True:
            try:
                # a short read timeout keeps the reader responsive to close()
                self.serial = serial.Serial(self.port, self.baud_rate, timeout=0.01)
            except (serial.SerialException, OSError):
                if time.monotonic() >= deadline:
                    break
                time.sleep(0.2)
            else:
                logger.info(f"Connected to '{self.port}' at {self.baud_rate} baud")
                return True

        self.serial = None
        raise DeviceNotFoundError(f"Could not connect to port {self.port}")

    def _reader_loop(self):
        while not self._closed:
            if self.serial is None:
                self._reconnect()
                continue
            try:
                raw = self.serial.readline()
            except (serial.SerialException, OSError) as e:
                if self._closed:
                    break
                logger.error(f"Lost connection to motor board: {e}")
                self._drop_port()
                continue

            line = raw.decode('ascii', errors='ignore').strip()
            if line:
                self._route_line(line)

    def _drop_port(self):
        port, self.serial = self.serial, None
        try:
            if port is not None and port.is_open:
                port.close()
        except (serial.SerialException, OSError) as e:
            logger.debug(f"Closing dropped port failed: {e}")

    def _reconnect(self):
        try:
            self.connect(self.reconnect_timeout)
        except DeviceNotFoundError as e:
            logger.error(f"{e}, retrying")

    def _route_line(self, line: str):
        """Sends a received line to the log callback, the pending reply or the unsolicited callback."""
        log_level, log_msg = split_log_line(line)
        if log_level is not None:
            if self.log_msg_callback:
                self.log_msg_callback(log_level, log_msg)
            return

        with self._lock:
            pending = self._pending
            if pending is not None:
                status, error_msg = parse_reply_line(line)
                if status is None:
                    pending.payload += line + '\n'
                else:
                    pending.status = status
                    pending.error_msg = error_msg
                    self._reply_ready.notify()
                return

        if self.unsolicited_msg_callback:
            self.unsolicited_msg_callback(line)

    def send_command(self, cmd: str, timeout: float = 0.05) -> Tuple[ReplyStatus, str]:
        """
        Sends a command and blocks until the board terminates its reply.
        :param cmd: The command to send.
        :param timeout: Maximum time to wait for the reply, kept below one control period.
        :return: Tuple containing the reply status and the payload lines.
        :raises CommandTimeoutError: if no reply arrived in time
        :raises CommandError: if the port is closed or the board answered with an error
        """
        cmd = cmd.strip()
        with self._lock:
            if not self.is_open:
                raise CommandError('Serial not open')

            pending = self._pending = PendingReply(cmd)
            logger.debug(f"< {cmd}")
            self.serial.write((cmd + "\n").encode('ascii'))
            self.serial.flush()

            finished = self._reply_ready.wait_for(lambda: pending.status is not None, timeout=timeout)
            self._pending = None

        if not finished:
            self.timeouts += 1
            raise CommandTimeoutError(f"Motor board did not reply to '{cmd}' within {timeout * 1000:.0f} ms")

        logger.debug(f"> {pending.status.name} {pending.payload.strip()}")
        if pending.status == ReplyStatus.ERROR:
            raise CommandError(f"'{cmd}' failed: {pending.error_msg}")
        return pending.status, pending.payload

    def close(self):
        """Stops the reader and closes the serial port."""
        self._closed = True
        if self.is_open:
            self.serial.close()
        if self._reader_thread is not threading.current_thread():
            self._reader_thread.join(timeout=1.0)
