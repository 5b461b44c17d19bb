"""Unit inventory over the D-Bus service manager API."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from xml.etree import ElementTree

from dbus_fast import BusType, Message, MessageType
from dbus_fast.aio import MessageBus
from dbus_fast.errors import DBusError, DBusFastError
from dbus_fast.introspection import Node

from invtop.config import BusConfig
from invtop.errors import FormatError, TransportError
from invtop.models import UnitRecord

logger = logging.getLogger(__name__)

INTROSPECTABLE_INTERFACE = "org.freedesktop.DBus.Introspectable"

# Everything the bus, a proxy, or a remote call can raise
_TRANSPORT_ERRORS = (DBusFastError, DBusError, EOFError, OSError)

BUS_TYPES = {
    "system": BusType.SYSTEM,
    "session": BusType.SESSION,
}


def unit_introspection(interface: str) -> Node:
    """Describe the unit properties read by the client, for building proxies."""
    return Node.parse(
        f"""
        <node>
          <interface name="{interface}">
            <property name="CanFreeze" type="b" access="read"/>
            <property name="CollectMode" type="s" access="read"/>
            <property name="Id" type="s" access="read"/>
          </interface>
        </node>
        """.strip()
    )


def unit_names_from_xml(document: str) -> list[str]:
    """
    Extract the names of the child nodes from an introspection document.

    Raises:
        FormatError: If the document is not well-formed XML.
    """
    try:
        root = ElementTree.fromstring(document)
    except ElementTree.ParseError as exc:
        raise FormatError(f"malformed introspection document: {exc}") from exc
    return [
        node.attrib["name"]
        for node in root.iter("node")
        if node is not root and node.get("name")
    ]


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class BusConnection:
    """
    A shared, lazily opened bus connection.

    The first get() opens the connection; concurrent first callers wait on
    the same attempt and receive the same bus. Later calls reuse it.
    """

    def __init__(
        self,
        bus_type: BusType = BusType.SYSTEM,
        connect: Callable[[], Awaitable[MessageBus]] | None = None,
    ) -> None:
        """
        Initialize the BusConnection.

        Args:
            bus_type: Which bus to connect to.
            connect: Coroutine factory opening the bus. Defaults to a dbus-fast MessageBus.
        """
        self._bus_type = bus_type
        self._connect = connect or self._open
        self._bus: MessageBus | None = None
        self._lock = asyncio.Lock()
        self._state = ConnectionState.DISCONNECTED

    @classmethod
    def from_config(cls, config: BusConfig) -> "BusConnection":
        return cls(bus_type=BUS_TYPES[config.bus])

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def _open(self) -> MessageBus:
        return await MessageBus(bus_type=self._bus_type).connect()

    async def get(self) -> MessageBus:
        """Return the connection, opening it on first use."""
        if self._bus is not None:
            return self._bus
        async with self._lock:
            if self._bus is None:
                self._state = ConnectionState.CONNECTING
                try:
                    self._bus = await self._connect()
                except BaseException:
                    self._state = ConnectionState.DISCONNECTED
                    raise
                self._state = ConnectionState.CONNECTED
                logger.debug("Connected to the %s bus", self._bus_type.name.lower())
        return self._bus

    def close(self) -> None:
        """Disconnect, so the next get() opens a fresh connection."""
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None
        self._state = ConnectionState.DISCONNECTED


class UnitInventoryClient:
    """
    Discovers units by introspection and reads their properties.

    A refresh is all-or-nothing: any failure raises TransportError or
    FormatError and the previously stored unit list is kept.
    """

    def __init__(self, connection: BusConnection, config: BusConfig | None = None) -> None:
        self._connection = connection
        self._config = config or BusConfig()
        self._unit_node = unit_introspection(self._config.unit_interface)
        self._units: list[UnitRecord] = []

    @property
    def units(self) -> list[UnitRecord]:
        """Get the unit list from the last successful refresh."""
        return self._units

    async def refresh(self) -> list[UnitRecord]:
        """
        Query every unit and replace the stored list.

        Raises:
            TransportError: Connecting, introspecting, or reading a property failed.
            FormatError: The introspection document could not be parsed.
        """
        try:
            bus = await self._connection.get()
            document = await self._introspect(bus)
        except _TRANSPORT_ERRORS as exc:
            logger.debug("Unit discovery failed: %s", exc)
            raise TransportError(f"unit discovery failed: {exc}") from exc

        units = []
        for name in unit_names_from_xml(document):
            units.append(await self._read_unit(bus, name))

        self._units = units
        return units

    async def _introspect(self, bus: MessageBus) -> str:
        reply = await bus.call(
            Message(
                destination=self._config.service,
                path=self._config.unit_root,
                interface=INTROSPECTABLE_INTERFACE,
                member="Introspect",
            )
        )
        if reply.message_type == MessageType.ERROR:
            raise TransportError(f"introspection failed: {reply.error_name}")
        return reply.body[0]

    async def _read_unit(self, bus: MessageBus, name: str) -> UnitRecord:
        try:
            proxy = bus.get_proxy_object(
                self._config.service, f"{self._config.unit_root}/{name}", self._unit_node
            )
            unit = proxy.get_interface(self._config.unit_interface)
            can_freeze = await unit.get_can_freeze()
            collect_mode = await unit.get_collect_mode()
            unit_id = await unit.get_id()
        except _TRANSPORT_ERRORS as exc:
            logger.debug("Reading unit %s failed: %s", name, exc)
            raise TransportError(f"reading unit {name!r} failed: {exc}") from exc

        return UnitRecord(
            unit_name=name,
            can_freeze=bool(can_freeze),
            collect_mode=collect_mode,
            unit_id=unit_id,
        )
