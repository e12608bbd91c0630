import asyncio

from records import MenuItem, Record
from server import RecordSourceError


def make_record(record_id: int, street: str | None = None) -> Record:
    return Record(
        id=record_id,
        first_name=f"First{record_id}",
        last_name=f"Last{record_id}",
        street=street or f"{record_id} Main St",
        postcode=f"{3000 + record_id}",
        region="VIC",
        country="Australia",
    )


class FakeServer:
    """
    In-memory record source. Reads can be delayed, held on a gate, or made to fail per ID.
    """

    def __init__(
        self,
        total: int = 25,
        failing: set[int] | None = None,
        delays: dict[int, float] | None = None,
        count_fails: bool = False,
        menu_fails: bool = False,
    ):
        self.total = total
        self.records = {i: make_record(i) for i in range(1, total + 1)}
        self.failing = failing or set()
        self.delays = delays or {}
        self.gates: dict[int, asyncio.Event] = {}
        self.count_fails = count_fails
        self.menu_fails = menu_fails
        self.events: list[str] = []
        self.requested: list[int] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def menu_items(self) -> list[MenuItem]:
        self.events.append("menu")
        await asyncio.sleep(0)
        if self.menu_fails:
            raise RecordSourceError("/menu_items", "HTTPStatusError: 503")
        return [
            MenuItem(id="1", menu_item="Home", href="/"),
            MenuItem(id="2", menu_item="Addresses", href="/addresses"),
        ]

    async def customer_numbers(self) -> int:
        self.events.append("count")
        await asyncio.sleep(0.01)
        if self.count_fails:
            raise RecordSourceError("/customer_numbers", "ConnectError: refused")
        return self.total

    async def address(self, record_id: int) -> Record:
        self.events.append(f"address:{record_id}")
        self.requested.append(record_id)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(record_id, 0))
            if record_id in self.gates:
                await self.gates[record_id].wait()
            if record_id in self.failing or record_id not in self.records:
                raise RecordSourceError(
                    f"/address_inventory/{record_id}", "HTTPStatusError: 500"
                )
            return self.records[record_id]
        finally:
            self.in_flight -= 1
