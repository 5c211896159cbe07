"""
Match Service

Owns the lifecycle of single-player and multiplayer matches: creation, guess
submission, turn switching, end-condition evaluation, disconnect and timeout
resolution, and the one-shot statistics settlement of finished matches.

Every mutation is a read-modify-write performed while holding the match lock
from the repository; the versioned save rejects writes based on stale reads.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from ..config.game_settings import (
    WORD_LENGTHS, TIER_TIME_LIMITS_MS, MULTIPLAYER_MAX_ATTEMPTS, DEFAULT_DEFINITION
)
from ..models.match import (
    EndReason, GuessResult, MatchMode, MatchPhase, MatchState, MatchmakingEntry,
    PlayerState, ScoreBreakdown, Winner
)
from ..models.user import LeaderboardEntry, PlayerStats
from ..utils.errors import (
    AccessDenied, AIUnavailable, GameError, MatchAlreadyFinished, MatchNotActive,
    MatchNotFound, NotYourTurn, TurnSkipTooSoon, ValidationError, WordDuelError
)
from ..utils.helpers import generate_match_id, now_ms
from ..utils.match_logger import match_logger
from .ai_service import AIOpponentRegistry, parse_tier
from .dictionary_service import DictionaryService
from .name_service import NameService
from .repository import MatchRepository, match_key, user_key
from .scoring_service import calculate_coins, score_player, settlement_time_remaining
from .word_logic import create_guess_result, first_winning_guess, normalize_word, is_valid_word_format

logger = logging.getLogger(__name__)

MatchListener = Callable[[MatchState], None]


class MatchService:
    """
    Turn-based match engine.

    Args:
        repository: Store access and per-key locks
        dictionary: Word validation and definitions
        ai_registry: Strategy instance per single-player match
        names: Display name resolver
        clock: Callable returning epoch milliseconds
    """

    def __init__(self,
                 repository: MatchRepository,
                 dictionary: DictionaryService,
                 ai_registry: AIOpponentRegistry,
                 names: NameService,
                 multiplayer_time_limit_ms: int = 10 * 60 * 1000,
                 disconnect_timeout_ms: int = 5 * 60 * 1000,
                 disconnect_grace_ms: int = 30 * 1000,
                 min_turn_skip_ms: int = 5 * 1000,
                 clock: Callable[[], int] = now_ms):
        self.repository = repository
        self.dictionary = dictionary
        self.ai_registry = ai_registry
        self.names = names
        self.multiplayer_time_limit_ms = multiplayer_time_limit_ms
        self.disconnect_timeout_ms = disconnect_timeout_ms
        self.disconnect_grace_ms = disconnect_grace_ms
        self.min_turn_skip_ms = min_turn_skip_ms
        self.clock = clock
        self._listeners: List[MatchListener] = []

    # Listeners (AI scheduler, websocket notifications)

    def add_listener(self, listener: MatchListener):
        self._listeners.append(listener)

    def _notify(self, match: MatchState):
        for listener in self._listeners:
            try:
                listener(match)
            except Exception:
                logger.exception(f"Match listener failed for {match.match_id}")

    # Validation

    def validate_word_length(self, word_length) -> int:
        try:
            word_length = int(word_length)
        except (TypeError, ValueError):
            raise ValidationError('Word length must be 4 or 5')
        if word_length not in WORD_LENGTHS:
            raise ValidationError('Word length must be 4 or 5')
        return word_length

    def validate_word(self, word: str, word_length: int) -> str:
        """Format and dictionary check for secret words and guesses."""
        if not is_valid_word_format(word, word_length):
            raise ValidationError(f'Word must be exactly {word_length} letters (A-Z only)')
        result = self.dictionary.validate_word(word)
        if not result.is_valid:
            raise ValidationError(result.error or 'Not a valid word')
        return result.word

    # Creation

    def create_single_player_match(self, player_id: str, display_name: Optional[str],
                                   secret_word: str, word_length, tier) -> MatchState:
        """Start a match against the computer; the human guesses first."""
        if not player_id:
            raise ValidationError('playerId is required')
        word_length = self.validate_word_length(word_length)
        secret_word = self.validate_word(secret_word, word_length)
        tier = parse_tier(tier)

        match_id = generate_match_id()
        now = self.clock()
        strategy = self.ai_registry.create(match_id, tier)

        human = PlayerState(
            id=player_id,
            display_name=self.names.resolve(player_id, display_name),
            secret_word=secret_word,
        )
        computer = PlayerState(
            id=f'ai_{match_id}',
            display_name=f'AI Opponent ({tier.value.capitalize()})',
            secret_word=strategy.select_secret_word(word_length),
            is_computer=True,
            skill_tier=tier,
        )

        match = MatchState(
            match_id=match_id,
            mode=MatchMode.SINGLE,
            phase=MatchPhase.ACTIVE,
            started_at=now,
            time_limit_ms=TIER_TIME_LIMITS_MS[tier.value],
            word_length=word_length,
            turn_holder=human.id,
            turn_started_at=now,
            player_a=human,
            player_b=computer,
        )
        self._register_new_match(match)
        match_logger.log_match_event(match_id, 'match_created', player_id,
                                    mode='single', tier=tier.value, word_length=word_length)
        return match

    def create_multiplayer_match(self, waiting: MatchmakingEntry, joining: MatchmakingEntry) -> MatchState:
        """Pair two queued requests. The player who waited takes the first turn."""
        now = self.clock()
        match = MatchState(
            match_id=generate_match_id(),
            mode=MatchMode.MULTI,
            phase=MatchPhase.ACTIVE,
            started_at=now,
            time_limit_ms=self.multiplayer_time_limit_ms,
            word_length=waiting.word_length,
            turn_holder=waiting.player_id,
            turn_started_at=now,
            player_a=PlayerState(waiting.player_id, waiting.display_name, waiting.secret_word),
            player_b=PlayerState(joining.player_id, joining.display_name, joining.secret_word),
        )
        self._register_new_match(match)
        match_logger.log_match_event(match.match_id, 'match_created', joining.player_id,
                                    mode='multi', opponent=waiting.player_id,
                                    word_length=match.word_length)
        return match

    def _register_new_match(self, match: MatchState):
        self.repository.save_match(match)
        self.repository.add_active(match.match_id, match.started_at)
        for player in match.human_players:
            self.repository.bind_player(player.id, match.match_id)
            self.repository.touch_activity(match.match_id, player.id, match.started_at)
            self.repository.touch_presence(match.match_id, player.id, match.started_at)
        self._notify(match)

    # Lookup

    def find_match(self, match_id: str) -> Optional[MatchState]:
        return self.repository.load_match(match_id)

    def is_active(self, match_id: str) -> bool:
        match = self.repository.load_match(match_id)
        return match is not None and match.phase is MatchPhase.ACTIVE

    def _load(self, match_id: str) -> MatchState:
        match = self.repository.load_match(match_id) if match_id else None
        if match is None:
            raise MatchNotFound()
        return match

    @staticmethod
    def _require_player(match: MatchState, player_id: str) -> PlayerState:
        player = match.player(player_id)
        if player is None or player.is_computer:
            raise AccessDenied()
        return player

    # End conditions

    def attempt_cap(self, match: MatchState, player: PlayerState) -> Optional[int]:
        if match.mode is MatchMode.MULTI:
            return MULTIPLAYER_MAX_ATTEMPTS
        return self.ai_registry.max_attempts(match.tier)

    def _attempts_left(self, match: MatchState, player: PlayerState) -> bool:
        cap = self.attempt_cap(match, player)
        return cap is None or len(player.guesses) < cap

    def evaluate_end(self, match: MatchState, now: int) -> bool:
        """Finish the match if any end condition holds. Returns True if it ended here."""
        if match.phase is not MatchPhase.ACTIVE:
            return False

        # Earliest solving guess wins, ordered by server-assigned sequence
        solved = []
        for player in (match.player_a, match.player_b):
            winning = first_winning_guess(player.guesses)
            if winning is not None:
                solved.append((winning.sequence, player))
        if solved:
            _, winner = min(solved, key=lambda item: item[0])
            self._finish(match, match.slot_of(winner.id), EndReason.SOLVED, now)
            return True

        if now - match.started_at >= match.time_limit_ms:
            self._finish(match, Winner.DRAW, EndReason.TIME_LIMIT, now)
            return True

        if match.mode is MatchMode.SINGLE:
            human = match.human_players[0]
            if not self._attempts_left(match, human):
                self._finish(match, match.slot_of(match.computer_player.id),
                             EndReason.ATTEMPTS_EXHAUSTED, now)
                return True
        elif not any(self._attempts_left(match, p) for p in (match.player_a, match.player_b)):
            self._finish(match, Winner.DRAW, EndReason.ATTEMPTS_EXHAUSTED, now)
            return True

        return False

    def _last_seen(self, match: MatchState, player_id: str) -> int:
        seen = [
            self.repository.last_presence(match.match_id, player_id),
            self.repository.last_activity(match.match_id, player_id),
        ]
        seen = [t for t in seen if t is not None]
        return max(seen) if seen else match.started_at

    def check_disconnect(self, match: MatchState, now: int, observer_id: str = None) -> bool:
        """
        Forfeit a multiplayer match whose player has gone silent.

        With an observer, only the observer's opponent is checked. Without one
        (background sweep) both players are checked; if both are silent the
        match is a draw.
        """
        if match.mode is not MatchMode.MULTI or match.phase is not MatchPhase.ACTIVE:
            return False
        if now - match.started_at < self.disconnect_grace_ms:
            return False

        if observer_id is not None:
            candidates = [match.opponent_of(observer_id)]
        else:
            candidates = [match.player_a, match.player_b]
        stale = [p for p in candidates
                 if now - self._last_seen(match, p.id) > self.disconnect_timeout_ms]
        if not stale:
            return False

        if len(stale) == 2:
            winner = Winner.DRAW
        else:
            winner = match.slot_of(match.opponent_of(stale[0].id).id)
        match_logger.log_match_event(match.match_id, 'disconnect_forfeit', 'system',
                                    disconnected=[p.id for p in stale])
        self._finish(match, winner, EndReason.DISCONNECT, now)
        return True

    def settle(self, match: MatchState, now: int, observer_id: str = None) -> bool:
        """Apply timeout, attempt and disconnect endings. Idempotent."""
        return self.evaluate_end(match, now) or self.check_disconnect(match, now, observer_id)

    def _finish(self, match: MatchState, winner: Winner, reason: EndReason, now: int):
        match.phase = MatchPhase.FINISHED
        match.winner = winner
        match.end_reason = reason
        match.finished_at = now
        for player in (match.player_a, match.player_b):
            player.secret_word_definition = self._definition(player.secret_word)

    def _definition(self, word: str) -> str:
        try:
            return self.dictionary.definition_of(word) or DEFAULT_DEFINITION
        except WordDuelError as e:
            logger.warning(f"Definition lookup failed for {word}: {e}")
            return DEFAULT_DEFINITION

    # Persistence of a mutation

    def _commit(self, match: MatchState, was_active: bool):
        """
        Save a mutated match. The first save that moves a match to finished
        also claims the settlement, so statistics are applied exactly once.
        """
        settle_now = (was_active and match.phase is MatchPhase.FINISHED
                      and not match.statistics_applied)
        if settle_now:
            match.statistics_applied = True
        self.repository.save_match(match)

        if settle_now:
            self._after_finish(match)

    def _after_finish(self, match: MatchState):
        self.repository.remove_active(match.match_id)
        self.ai_registry.cleanup(match.match_id)
        for player in match.human_players:
            self.repository.unbind_player(player.id, match.match_id)
        try:
            self.apply_statistics(match)
        except WordDuelError as e:
            logger.error(f"Statistics settlement failed for {match.match_id}: {e}")
            match_logger.log_match_event(match.match_id, 'statistics_failed', 'system', error=str(e))
        match_logger.log_match_event(
            match.match_id, 'match_finished', 'system',
            winner=match.winner.value, reason=match.end_reason.value,
            guess_counts=[len(match.player_a.guesses), len(match.player_b.guesses)],
        )

    def apply_statistics(self, match: MatchState):
        """Add each human player's points, coins and game counts."""
        winner = match.winning_player()
        for player in match.human_players:
            breakdown = score_player(match, player)
            with self.repository.lock(user_key(player.id)):
                stats = self.repository.load_stats(player.id) or PlayerStats(player.id, player.display_name)
                stats.display_name = player.display_name
                stats.points += breakdown.total
                stats.coins += calculate_coins(breakdown.total)
                stats.games_played += 1
                if winner is not None and winner.id == player.id:
                    stats.games_won += 1
                self.repository.save_stats(stats)
            match_logger.log_match_event(match.match_id, 'statistics_applied', player.id,
                                        points=breakdown.total, total_points=stats.points)

    # Reads

    def client_view(self, match: MatchState, player_id: str) -> Dict[str, Any]:
        """Match state as seen by one player; the opponent's secret stays hidden until the end."""
        view = match.to_dict()
        view.pop('statistics_applied', None)
        view.pop('next_sequence', None)
        finished = match.phase is MatchPhase.FINISHED
        if not finished:
            for side in ('player_a', 'player_b'):
                if view[side]['id'] != player_id:
                    view[side]['secret_word'] = ''
        view['time_remaining_ms'] = settlement_time_remaining(match, self.clock())

        player = match.player(player_id)
        if finished and player is not None and not player.is_computer:
            view['score_breakdown'] = self.score_breakdown(match, player).to_dict()
        return view

    def score_breakdown(self, match: MatchState, player: PlayerState) -> ScoreBreakdown:
        return score_player(match, player)

    def get_match_state(self, match_id: str, player_id: str) -> Dict[str, Any]:
        """
        Read a match for a player. Records the player's presence and settles
        pending timeouts or disconnects; never makes AI moves.
        """
        with self.repository.lock(match_key(match_id)):
            match = self._load(match_id)
            self._require_player(match, player_id)
            now = self.clock()
            changed = False
            if match.phase is MatchPhase.ACTIVE:
                self.repository.touch_presence(match.match_id, player_id, now)
                changed = self.settle(match, now, observer_id=player_id)
                if changed:
                    self._commit(match, was_active=True)
            view = self.client_view(match, player_id)
        if changed:
            self._notify(match)
        return view

    # Guesses

    def _apply_guess(self, match: MatchState, player: PlayerState, word: str, now: int) -> GuessResult:
        opponent = match.opponent_of(player.id)
        result = create_guess_result(word, opponent.secret_word, now, match.next_sequence)
        match.next_sequence += 1
        player.guesses.append(result)
        match.turn_holder = opponent.id
        match.turn_started_at = now
        if not player.is_computer:
            self.repository.touch_activity(match.match_id, player.id, now)
        self.evaluate_end(match, now)
        return result

    def _guess_response(self, match: MatchState, viewer_id: str, result: GuessResult) -> Dict[str, Any]:
        response = {
            'match_state': self.client_view(match, viewer_id),
            'guess_result': result.to_dict(),
            'match_ended': match.phase is MatchPhase.FINISHED,
        }
        if 'score_breakdown' in response['match_state']:
            response['score_breakdown'] = response['match_state']['score_breakdown']
        return response

    def _require_active(self, match: MatchState, now: int, observer_id: str = None):
        """Raise unless the match is still active after settling pending endings."""
        if match.phase is MatchPhase.FINISHED:
            raise MatchAlreadyFinished()
        if match.phase is not MatchPhase.ACTIVE:
            raise MatchNotActive()
        if self.settle(match, now, observer_id):
            self._commit(match, was_active=True)
            raise MatchAlreadyFinished()

    def submit_guess(self, match_id: str, player_id: str, word: str) -> Dict[str, Any]:
        """
        Score a human guess against the opponent's secret and pass the turn.

        Raises:
            MatchNotFound, AccessDenied, MatchNotActive, MatchAlreadyFinished,
            NotYourTurn, ValidationError
        """
        finished_early = False
        try:
            with self.repository.lock(match_key(match_id)):
                match = self._load(match_id)
                player = self._require_player(match, player_id)
                now = self.clock()
                self.repository.touch_presence(match.match_id, player_id, now)
                try:
                    self._require_active(match, now, observer_id=player_id)
                except MatchAlreadyFinished:
                    finished_early = True
                    raise
                if match.turn_holder != player_id:
                    raise NotYourTurn()
                if not self._attempts_left(match, player):
                    raise GameError('No attempts remaining')
                word = self.validate_word(word, match.word_length)

                result = self._apply_guess(match, player, word, now)
                self._commit(match, was_active=True)
                response = self._guess_response(match, player_id, result)
        except MatchAlreadyFinished:
            if finished_early:
                self._notify(match)
            raise

        match_logger.log_match_event(match_id, 'guess_submitted', player_id,
                                    guess_number=len(player.guesses),
                                    correct=result.is_correct,
                                    match_ended=response['match_ended'])
        self._notify(match)
        return response

    def play_ai_turn(self, match_id: str) -> Dict[str, Any]:
        """
        Make the computer's move in a single-player match.

        Strategy failures raise AIUnavailable and leave the match untouched so
        the turn can be retried. A computer that has used its tier's attempt budget passes the turn back
        without guessing.
        """
        finished_early = False
        try:
            with self.repository.lock(match_key(match_id)):
                match = self._load(match_id)
                if match.mode is not MatchMode.SINGLE:
                    raise GameError('Only single player matches have an AI opponent')
                now = self.clock()
                try:
                    self._require_active(match, now)
                except MatchAlreadyFinished:
                    finished_early = True
                    raise
                computer = match.computer_player
                if match.turn_holder != computer.id:
                    raise NotYourTurn("Not AI's turn")
                human = match.human_players[0]

                if not self._attempts_left(match, computer):
                    match.turn_holder = human.id
                    match.turn_started_at = now
                    self._commit(match, was_active=True)
                    response = {
                        'match_state': self.client_view(match, human.id),
                        'guess_result': None,
                        'match_ended': False,
                    }
                    passed = True
                else:
                    passed = False
                    response = self._computer_guess(match, computer, human, now)
        except MatchAlreadyFinished:
            if finished_early:
                self._notify(match)
            raise

        if passed:
            match_logger.log_match_event(match_id, 'ai_turn_passed', computer.id,
                                        attempts=len(computer.guesses))
        else:
            match_logger.log_match_event(match_id, 'ai_guess', computer.id,
                                        guess_number=len(computer.guesses),
                                        correct=computer.guesses[-1].is_correct,
                                        match_ended=response['match_ended'])
        self._notify(match)
        return response

    def _computer_guess(self, match: MatchState, computer: PlayerState, human: PlayerState,
                        now: int) -> Dict[str, Any]:
        match_id = match.match_id
        strategy = self.ai_registry.get_or_create(match_id, computer.skill_tier)
        try:
            word = strategy.next_guess(match.word_length, computer.guesses)
        except Exception as e:
            logger.exception(f"AI strategy failed in {match_id}")
            match_logger.log_match_event(match_id, 'ai_guess_failed', computer.id, error=str(e))
            raise AIUnavailable()

        result = self._apply_guess(match, computer, normalize_word(word), now)
        self._commit(match, was_active=True)
        return self._guess_response(match, human.id, result)

    def ai_turn_interval(self, tier) -> int:
        """Random delay in milliseconds before the tier's next move."""
        return self.ai_registry.random_turn_delay_ms(tier)

    # Turn skip and quit

    def skip_turn(self, match_id: str, player_id: str, force: bool = False) -> Dict[str, Any]:
        """
        Give up the current turn in a multiplayer match.

        Requires MIN_TURN_SKIP dwell since the later of the player's last
        activity and the start of the turn, unless forced or the player has no
        attempts left.
        """
        with self.repository.lock(match_key(match_id)):
            match = self._load(match_id)
            player = self._require_player(match, player_id)
            if match.mode is not MatchMode.MULTI:
                raise GameError('Turn skipping is only available in multiplayer matches')
            now = self.clock()
            self.repository.touch_presence(match.match_id, player_id, now)
            was_active = match.phase is MatchPhase.ACTIVE
            try:
                self._require_active(match, now, observer_id=player_id)
            except MatchAlreadyFinished:
                if was_active:
                    self._notify(match)
                raise
            if match.turn_holder != player_id:
                raise NotYourTurn()

            if not force and self._attempts_left(match, player):
                last = max(self.repository.last_activity(match_id, player_id) or 0,
                           match.turn_started_at or match.started_at)
                if now - last < self.min_turn_skip_ms:
                    raise TurnSkipTooSoon()

            match.turn_holder = match.opponent_of(player_id).id
            match.turn_started_at = now
            self.repository.touch_activity(match_id, player_id, now)
            self._commit(match, was_active=True)
            view = self.client_view(match, player_id)

        match_logger.log_match_event(match_id, 'turn_skipped', player_id, forced=force)
        self._notify(match)
        return view

    def quit_match(self, match_id: str, player_id: str) -> Dict[str, Any]:
        """End an active multiplayer match; the opponent wins."""
        with self.repository.lock(match_key(match_id)):
            match = self._load(match_id)
            self._require_player(match, player_id)
            if match.mode is not MatchMode.MULTI:
                raise GameError('Quitting is only available in multiplayer matches')
            if match.phase is MatchPhase.FINISHED:
                raise MatchAlreadyFinished()
            if match.phase is not MatchPhase.ACTIVE:
                raise MatchNotActive()

            now = self.clock()
            self._finish(match, match.slot_of(match.opponent_of(player_id).id), EndReason.QUIT, now)
            self._commit(match, was_active=True)
            view = self.client_view(match, player_id)

        match_logger.log_match_event(match_id, 'match_quit', player_id)
        self._notify(match)
        return view

    # Background sweep

    def sweep_active_matches(self) -> List[MatchState]:
        """
        Settle timed-out or abandoned matches nobody is reading.

        Returns the matches that are still active afterwards.
        """
        still_active = []
        for match_id in self.repository.active_match_ids():
            ended = None
            try:
                with self.repository.lock(match_key(match_id)):
                    match = self.repository.load_match(match_id)
                    if match is None or match.phase is not MatchPhase.ACTIVE:
                        self.repository.remove_active(match_id)
                        continue
                    if self.settle(match, self.clock()):
                        self._commit(match, was_active=True)
                        ended = match
                    else:
                        still_active.append(match)
            except WordDuelError as e:
                logger.warning(f"Sweep skipped {match_id}: {e}")
                continue
            if ended is not None:
                self._notify(ended)
        return still_active

    # Statistics

    def player_stats(self, player_id: str) -> PlayerStats:
        stats = self.repository.load_stats(player_id)
        if stats is None:
            stats = PlayerStats(player_id, self.names.resolve(player_id))
        return stats

    def leaderboard(self, limit: int = 10, player_id: str = None) -> Dict[str, Any]:
        """Top players by points plus the caller's own rank."""
        limit = max(1, min(int(limit), 100))
        entries = []
        for rank, (pid, points) in enumerate(self.repository.leaderboard(limit), start=1):
            stats = self.repository.load_stats(pid)
            name = stats.display_name if stats and stats.display_name else pid
            entries.append(LeaderboardEntry(pid, name, int(points), rank).to_dict())

        result = {
            'leaderboard': entries,
            'total_players': self.repository.leaderboard_size(),
        }
        if player_id:
            result['player_rank'] = self.repository.leaderboard_rank(player_id)
        return result
