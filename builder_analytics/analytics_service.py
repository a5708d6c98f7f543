"""
Builder Analytics

Dashboard snapshot for a quest creator: quest status breakdown, participant
counts and completion rate, deposited vs distributed rewards, a conversion
funnel, a daily time series and the most active participants.

Everything is recomputed on each call. Per-quest reads (completions and the
escrow deposit) run on a bounded thread pool; a failure in one quest's reads
is logged and that quest contributes what it can, the snapshot is still
produced.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import config
from blockchain import to_ether
from quest_escrow import quest_escrow_service
from supabase_client import to_epoch_ms
from .quest_sources import LocalQuestCache, default_quest_source, is_creator

logger = logging.getLogger(__name__)

STATUS_KEYS = {
    'ACTIVE': 'active',
    'PAUSED': 'paused',
    'COMPLETED': 'completed',
    'EXPIRED': 'expired',
}


def parse_amount(value) -> float:
    """Numeric reward amount from a number or numeric string, 0.0 otherwise"""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if amount == amount else 0.0  # NaN


def participant_address(completion: dict):
    user = completion.get('user') or {}
    address = user.get('address') or completion.get('userId') or completion.get('address')
    return address.lower() if isinstance(address, str) and address else None


def percentage(part, whole) -> float:
    return (part / whole) * 100 if whole > 0 else 0


def estimate_deposit(quest: dict) -> float:
    """Deposit guess from quest fields when the escrow can't be read"""
    reward = parse_amount(quest.get('trustReward'))
    if reward <= 0:
        return 0.0

    max_completions = parse_amount(quest.get('maxCompletions'))
    if max_completions > 0:
        return reward * max_completions
    return reward * parse_amount(quest.get('completedCount')) * config.ANALYTICS_CONFIG['DEPOSIT_ESTIMATE_BUFFER']


def empty_analytics() -> dict:
    return {
        'questStatusBreakdown': {'active': 0, 'paused': 0, 'completed': 0, 'expired': 0},
        'participantData': {'uniqueWallets': 0, 'totalStarted': 0, 'totalCompleted': 0, 'completionRate': 0},
        'rewardData': {'totalDeposited': 0, 'totalDepositedUSD': 0, 'totalDistributed': 0, 'totalDistributedUSD': 0},
        'funnelData': {
            'views': 0, 'joins': 0, 'completes': 0,
            'viewToJoinRate': 0, 'joinToCompleteRate': 0, 'overallConversionRate': 0,
        },
        'timeSeriesData': [],
        'topParticipants': [],
    }


class BuilderAnalyticsService:
    def __init__(self, quest_source=None, local_cache=None, escrow=None, max_workers=None):
        self._quest_source = quest_source
        self.local_cache = local_cache or LocalQuestCache()
        self.escrow = escrow or quest_escrow_service
        self.max_workers = max_workers or config.ANALYTICS_CONFIG['MAX_WORKERS']

    @property
    def quest_source(self):
        if self._quest_source is None:
            self._quest_source = default_quest_source()
        return self._quest_source

    # ============================
    # Quest collection
    # ============================

    def collect_quests(self, creator_address: str, start_ms: int) -> list:
        """Creator's quests from the source then the local cache, deduplicated by id, created on/after start_ms"""
        remote = [q for q in self.quest_source.list_quests(creator_address) if is_creator(q, creator_address)]
        local = self.local_cache.list_quests(creator_address)

        quests = []
        seen_ids = set()
        for quest in remote + local:
            if quest.get('id') in seen_ids:
                continue
            seen_ids.add(quest.get('id'))
            quests.append(quest)

        return [q for q in quests if to_epoch_ms(q.get('createdAt'), 0) >= start_ms]

    # ============================
    # Per-quest reads
    # ============================

    def _fetch_completions(self, quest: dict):
        """(completions, ok); ok is False when the fetch raised"""
        try:
            completions = self.quest_source.get_quest_completions(
                quest['id'], config.ANALYTICS_CONFIG['COMPLETIONS_PAGE_SIZE']
            )
            return completions, True
        except Exception as e:
            logger.warning(f"⚠️ Error fetching completions for quest {quest.get('id')}: {e}")
            return None, False

    def _fetch_deposit(self, quest: dict) -> float:
        if not self.escrow.is_deployed():
            return estimate_deposit(quest)

        try:
            deposit = self.escrow.get_quest_deposit(quest['id'])
        except Exception as e:
            logger.debug(f"No escrow deposit readable for quest {quest.get('id')}: {e}")
            return estimate_deposit(quest)

        total_amount = deposit.get('totalAmount') or 0
        return to_ether(total_amount) if total_amount > 0 else 0.0

    def _fetch_quest_data(self, quest: dict) -> dict:
        completions, ok = self._fetch_completions(quest)
        return {
            'completions': completions,
            'ok': ok,
            'deposit': self._fetch_deposit(quest),
        }

    def _fetch_all(self, quests: list) -> list:
        """Per-quest reads in quest order"""
        if not quests:
            return []
        workers = max(1, min(self.max_workers, len(quests)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._fetch_quest_data, quests))

    # ============================
    # Aggregation
    # ============================

    def get_builder_analytics(self, creator_address: str, now: datetime = None) -> dict:
        now = now or datetime.now(timezone.utc)
        now_ms = int(now.timestamp() * 1000)
        start_ms = to_epoch_ms(config.ANALYTICS_CONFIG['START_DATE'])

        quests = self.collect_quests(creator_address, start_ms)
        logger.info(f"📊 Builder analytics for {creator_address[:8]}...: {len(quests)} quests")

        analytics = empty_analytics()

        # Status breakdown
        breakdown = analytics['questStatusBreakdown']
        for quest in quests:
            key = STATUS_KEYS.get((quest.get('status') or 'ACTIVE').upper())
            if key:
                breakdown[key] += 1

        # Completions from the start date on
        unique_wallets = set()
        total_started = 0
        total_completed = 0
        total_deposited = 0.0
        counted = []

        # Addresses each quest's fetched completions already account for
        fetched_addresses = {}

        for quest, data in zip(quests, self._fetch_all(quests)):
            total_deposited += data['deposit']
            if not data['ok']:
                continue

            completions = data['completions']
            if isinstance(completions, list):
                seen = fetched_addresses.setdefault(quest.get('id'), set())
                for completion in completions:
                    address = participant_address(completion)
                    if address:
                        seen.add(address)

                    raw_completed_at = completion.get('completedAt')
                    if raw_completed_at is None or raw_completed_at == '':
                        completed_at = now_ms
                    else:
                        completed_at = to_epoch_ms(raw_completed_at)
                        if completed_at is None:
                            logger.debug(f"Skipping completion with bad completedAt {raw_completed_at!r}")
                            continue
                    if completed_at < start_ms:
                        continue

                    if address:
                        unique_wallets.add(address)
                    total_started += 1
                    total_completed += 1
                    counted.append((completion, completed_at))
            else:
                total_started += int(parse_amount(quest.get('completedCount'))) or len(quest.get('completedBy') or [])

        # Addresses recorded on the quests but missing from their fetched completions
        for quest in quests:
            completed_by = quest.get('completedBy')
            if not isinstance(completed_by, list):
                continue
            seen = fetched_addresses.get(quest.get('id'), set())
            for address in completed_by:
                address = str(address).lower()
                if address in seen:
                    continue
                unique_wallets.add(address)
                total_started += 1
                total_completed += 1

        participant_data = analytics['participantData']
        participant_data['uniqueWallets'] = len(unique_wallets)
        participant_data['totalStarted'] = total_started
        participant_data['totalCompleted'] = total_completed
        participant_data['completionRate'] = percentage(total_completed, total_started)

        # Rewards
        total_distributed = 0.0
        for completion, _ in counted:
            amount = parse_amount(completion.get('trustEarned'))
            if amount > 0:
                total_distributed += amount

        rate = config.ANALYTICS_CONFIG['TRUST_TO_USD_RATE']
        analytics['rewardData'] = {
            'totalDeposited': total_deposited,
            'totalDepositedUSD': total_deposited * rate,
            'totalDistributed': total_distributed,
            'totalDistributedUSD': total_distributed * rate,
        }

        analytics['funnelData'] = self.build_funnel(total_started, total_completed)
        analytics['timeSeriesData'] = self.build_time_series(counted, now, start_ms)
        analytics['topParticipants'] = self.build_top_participants(counted)

        return analytics

    def build_funnel(self, started: int, completed: int) -> dict:
        views = max(
            started * config.ANALYTICS_CONFIG['VIEWS_MULTIPLIER'],
            started + config.ANALYTICS_CONFIG['VIEWS_FLOOR']
        )
        return {
            'views': views,
            'joins': started,
            'completes': completed,
            'viewToJoinRate': percentage(started, views),
            'joinToCompleteRate': percentage(completed, started),
            'overallConversionRate': percentage(completed, views),
        }

    def build_time_series(self, counted: list, now: datetime, start_ms: int) -> list:
        """One point per UTC day of the window, oldest first"""
        days_back = config.ANALYTICS_CONFIG['TIME_SERIES_DAYS']
        today = now.astimezone(timezone.utc).date()
        start_day = datetime.fromtimestamp(start_ms / 1000, tz=timezone.utc).date()
        first_day = max(today - timedelta(days=days_back - 1), start_day)

        buckets = {}
        day = first_day
        while day <= today and len(buckets) < days_back:
            buckets[day.isoformat()] = {'participants': set(), 'completions': 0}
            day += timedelta(days=1)

        for completion, completed_at in counted:
            key = datetime.fromtimestamp(completed_at / 1000, tz=timezone.utc).date().isoformat()
            bucket = buckets.get(key)
            if bucket is None:
                continue
            bucket['completions'] += 1
            address = participant_address(completion)
            if address:
                bucket['participants'].add(address)

        series = []
        for key, bucket in buckets.items():
            midnight = datetime.fromisoformat(key).replace(tzinfo=timezone.utc)
            series.append({
                'date': key,
                'participants': len(bucket['participants']),
                'completions': bucket['completions'],
                'timestamp': int(midnight.timestamp() * 1000),
            })
        return series

    def build_top_participants(self, counted: list) -> list:
        participants = {}
        for completion, completed_at in counted:
            address = participant_address(completion)
            if not address:
                continue

            entry = participants.setdefault(address, {
                'address': address,
                'completions': 0,
                'totalRewards': 0.0,
                'lastCompletedAt': 0,
            })
            entry['completions'] += 1
            entry['totalRewards'] += parse_amount(completion.get('trustEarned'))
            entry['lastCompletedAt'] = max(entry['lastCompletedAt'], completed_at)

            username = (completion.get('user') or {}).get('username')
            if username:
                entry['username'] = username

        ranked = sorted(participants.values(), key=lambda p: p['completions'], reverse=True)
        return ranked[:config.ANALYTICS_CONFIG['TOP_PARTICIPANTS']]


# Global instance
builder_analytics_service = BuilderAnalyticsService()
