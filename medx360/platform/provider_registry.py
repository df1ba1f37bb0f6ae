from medx360.core.config import Settings
from medx360.platform.ports.event_bus import EventBusPort
from medx360.platform.adapters.bus_noop import NoopEventBus
from medx360.platform.adapters.bus_redis import RedisEventBus

class ProviderRegistry:
    """Lazily builds adapters from one Settings instance; one registry per app."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._event_bus: EventBusPort | None = None

    def event_bus(self) -> EventBusPort:
        if self._event_bus is None:
            prov = (self.settings.EVENT_BUS_PROVIDER or "noop").lower()
            if prov == "redis":
                self._event_bus = RedisEventBus(
                    self.settings.REDIS_URL,
                    stream=self.settings.REDIS_STREAM,
                    maxlen=self.settings.REDIS_STREAM_MAXLEN,
                )
            else:
                self._event_bus = NoopEventBus()
        return self._event_bus

    async def close(self):
        bus = self._event_bus
        if isinstance(bus, RedisEventBus):
            await bus.close()
