"""Main entry point: wires all layers together."""
import asyncio
import logging
import random
import signal

from dotenv import load_dotenv

load_dotenv()

from shared.config import Config
from shared.events import EventBus
from shared.llm_client import LLMClient
from shared.logging import setup_logging
from feeds.market_cache import MarketDataCache
from feeds.nadfun_client import NadFunClient
from feeds.token_discovery import TokenDiscovery
from council.debate import DebateCoordinator
from council.narrator import Narrator
from council.orchestrator import CouncilOrchestrator
from council.personas import DEFAULT_PERSONAS
from council.scheduler import AnalysisScheduler
from council.voting import ConsensusVoter
from execution.paper_trader import PaperTrader
from execution.position_tracker import PositionTracker
from execution.trade_coordinator import TradeCoordinator
from storage.db import Database
from storage.journal import EventJournal

logger = setup_logging("token-council")


class CouncilAgent:
    """Main agent running the scheduler, the event journal and the status log."""

    def __init__(self, config: Config):
        self.config = config
        self._shutdown = asyncio.Event()

        # Components (initialized in start())
        self.db: Database | None = None
        self.events: EventBus | None = None
        self.provider: NadFunClient | None = None
        self.llm: LLMClient | None = None
        self.cache: MarketDataCache | None = None
        self.position_tracker: PositionTracker | None = None
        self.scheduler: AnalysisScheduler | None = None
        self.journal: EventJournal | None = None

    def build(self):
        """Construct every collaborator from config."""
        cfg = self.config
        self.db = Database(cfg.DB_PATH)
        self.events = EventBus(maxsize=1000)
        self.provider = NadFunClient(cfg.NADFUN_API_URL, api_key=cfg.NADFUN_API_KEY)
        self.cache = MarketDataCache(self.provider, cfg)
        self.llm = LLMClient(
            host=cfg.OLLAMA_HOST,
            model=cfg.LLM_MODEL_NARRATOR,
            api_key=cfg.OLLAMA_API_KEY,
            timeout=cfg.LLM_TIMEOUT_SECONDS,
            max_concurrency=cfg.LLM_MAX_CONCURRENCY,
        )
        narrator = Narrator(
            self.llm, cfg.LLM_MODEL_NARRATOR,
            names={p.id: p.name for p in DEFAULT_PERSONAS},
        )
        debate = DebateCoordinator(
            narrator,
            self.events,
            rng=random.Random(cfg.DEBATE_SEED),
            revision_probability=cfg.REVISION_PROBABILITY,
        )

        if cfg.is_live:
            logger.warning("Live trading not implemented, using paper trader")
        self.position_tracker = PositionTracker(self.db, cfg)
        trader = TradeCoordinator(
            PaperTrader(self.db, self.cache, cfg), self.position_tracker, self.events, cfg,
        )
        orchestrator = CouncilOrchestrator(
            cache=self.cache,
            debate=debate,
            voter=ConsensusVoter(cfg.QUORUM),
            trader=trader,
            events=self.events,
            personas=DEFAULT_PERSONAS,
            max_rounds=cfg.MAX_ROUNDS,
        )
        self.scheduler = AnalysisScheduler(
            orchestrator,
            TokenDiscovery(self.cache, cfg),
            self.cache,
            self.events,
            scan_interval=cfg.SCAN_INTERVAL_SECONDS,
        )
        self.journal = EventJournal(self.events, self.db, pacing_seconds=cfg.PACING_SECONDS)

    async def start(self):
        """Initialize and run all components."""
        logger.info(
            "Starting council agent",
            extra={
                "mode": self.config.TRADING_MODE,
                "quorum": self.config.QUORUM,
                "max_rounds": self.config.MAX_ROUNDS,
            },
        )
        self.build()
        await self.db.init()
        if not await self.llm.is_available():
            logger.warning("LLM unreachable, narration will use fallback lines")

        tasks = [
            asyncio.create_task(self.journal.run(), name="journal"),
            asyncio.create_task(self.scheduler.run(self._shutdown), name="scheduler"),
            asyncio.create_task(self._status_loop(), name="status"),
        ]
        logger.info("All components started")

        await self._shutdown.wait()

        # Cleanup
        logger.info("Shutting down...")
        await self.scheduler.shutdown()
        await self.journal.drain()
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.provider.close()
        await self.llm.close()
        await self.db.close()
        logger.info("Shutdown complete")

    async def _status_loop(self):
        """Periodically log status."""
        while not self._shutdown.is_set():
            await asyncio.sleep(60)
            try:
                summary = await self.db.get_position_summary()
                open_count = await self.position_tracker.get_open_count()
                holdings = {}
                if self.config.PERSONA_WALLETS:
                    wallets = await self.cache.get_wallet_holdings(self.config.PERSONA_WALLETS)
                    holdings = {pid: None if h is None else len(h) for pid, h in wallets.items()}
                logger.info(
                    "Status update",
                    extra={
                        "scheduler": self.scheduler.state.as_dict(),
                        "queue": self.scheduler.discovery.queue_status(),
                        "cache": self.cache.stats(),
                        "events_dropped": self.events.dropped,
                        "open_positions": open_count,
                        "positions_by_persona": summary,
                        "wallet_tokens_by_persona": holdings,
                    },
                )
            except Exception as e:
                logger.error(f"Status loop error: {e}")

    def shutdown(self):
        self._shutdown.set()


def main():
    config = Config.from_env()
    logging.getLogger().setLevel(config.log_level_value)

    agent = CouncilAgent(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def handle_signal(sig, frame):
        logger.info(f"Received signal {sig}")
        loop.call_soon_threadsafe(agent.shutdown)

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        loop.run_until_complete(agent.start())
    except KeyboardInterrupt:
        agent.shutdown()
        loop.run_until_complete(asyncio.sleep(1))
    finally:
        loop.close()


if __name__ == "__main__":
    main()
