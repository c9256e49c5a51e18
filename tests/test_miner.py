"""Tests for the mining simulation — proves sealing, schedule and determinism."""

import pytest

from phlopchain.errors import MiningTimeoutError
from phlopchain.mining.miner import DifficultyInfo, Miner, MiningConfig


PAYLOAD = "1" + "1700000000" + "ab" * 32 + "cd" * 32


@pytest.fixture
def miner() -> Miner:
    return Miner(MiningConfig(), base_seed=42)


class TestWinRequirements:
    def test_first_block_all_ones(self) -> None:
        requirements = MiningConfig().get_win_requirements()
        assert len(requirements) == 100
        assert all(r == 1 for r in requirements)

    def test_second_block(self) -> None:
        requirements = MiningConfig(blocks_mined=1).get_win_requirements()
        assert requirements.count(1) == 99
        assert requirements.count(2) == 1

    def test_third_block(self) -> None:
        requirements = MiningConfig(blocks_mined=2).get_win_requirements()
        assert requirements.count(1) == 98
        assert requirements.count(2) == 2

    def test_extra_quota_goes_to_highest_ids(self) -> None:
        requirements = MiningConfig(blocks_mined=3).get_win_requirements()
        assert requirements[-3:] == [2, 2, 2]
        assert requirements[:97] == [1] * 97

    def test_escalation_caps_at_two(self) -> None:
        for blocks in (100, 150, 1000):
            requirements = MiningConfig(blocks_mined=blocks).get_win_requirements()
            assert requirements == [2] * 100

    def test_population_size_respected(self) -> None:
        requirements = MiningConfig(total_players=5, blocks_mined=2).get_win_requirements()
        assert requirements == [1, 1, 1, 2, 2]


class TestDifficultyInfo:
    def test_initial_score_is_one(self) -> None:
        info = MiningConfig().difficulty_info()
        assert info.difficulty_score() == 1.0
        assert info.total_required_wins == 100
        assert info.win_distribution == {1: 100}

    def test_score_after_one_block(self) -> None:
        info = MiningConfig(blocks_mined=1).difficulty_info()
        assert info.win_distribution == {1: 99, 2: 1}
        assert info.total_required_wins == 101
        assert info.difficulty_score() == pytest.approx(1.03)

    def test_score_at_full_escalation(self) -> None:
        info = MiningConfig(blocks_mined=100).difficulty_info()
        assert info.difficulty_score() == pytest.approx(4.0)

    def test_quadratic_weighting(self) -> None:
        info = DifficultyInfo(
            block_number=0,
            total_required_wins=4,
            win_distribution={1: 1, 3: 1},
            total_players=2,
        )
        assert info.difficulty_score() == pytest.approx(5.0)

    def test_to_dict(self) -> None:
        data = MiningConfig(blocks_mined=1).difficulty_info().to_dict()
        assert data["win_distribution"] == {"1": 99, "2": 1}
        assert data["block_number"] == 1

    def test_miner_reports_current_schedule(self, miner: Miner) -> None:
        assert miner.get_difficulty_info().block_number == 0
        miner.seal(PAYLOAD)
        info = miner.get_difficulty_info()
        assert info.block_number == 1
        assert info.win_distribution == {1: 99, 2: 1}


class TestSealing:
    def test_miner_creation(self, miner: Miner) -> None:
        assert len(miner.players) == 100
        assert all(p.required_wins == 1 for p in miner.players)
        assert [p.player_id for p in miner.players] == list(range(100))

    def test_first_block_seals_in_one_round(self, miner: Miner) -> None:
        result = miner.seal(PAYLOAD)
        assert result.success
        assert result.rounds == 1
        assert 100 <= result.total_games <= 300
        assert len(result.winning_players) == 100
        assert all(p.current_wins == p.required_wins == 1 for p in result.winning_players)

    def test_total_games_matches_player_games(self, miner: Miner) -> None:
        result = miner.seal(PAYLOAD)
        assert result.total_games == sum(p.games_played for p in result.winning_players)
        assert miner.games_played == result.total_games

    def test_seal_advances_schedule(self, miner: Miner) -> None:
        miner.seal(PAYLOAD)
        assert miner.config.blocks_mined == 1
        assert all(p.current_wins == 0 and p.games_played == 0 for p in miner.players)
        assert miner.players[99].required_wins == 2
        assert all(p.required_wins == 1 for p in miner.players[:99])

    def test_quota_two_needs_two_rounds(self, miner: Miner) -> None:
        miner.seal(PAYLOAD)
        result = miner.seal(PAYLOAD)
        assert result.rounds == 2
        assert result.winning_players[99].current_wins == 2

    def test_player_seeds_survive_sealing(self, miner: Miner) -> None:
        seeds = [p.seed for p in miner.players]
        miner.seal(PAYLOAD)
        miner.seal(PAYLOAD)
        assert [p.seed for p in miner.players] == seeds

    def test_snapshot_is_not_reset(self, miner: Miner) -> None:
        result = miner.seal(PAYLOAD)
        assert all(p.games_played >= 1 for p in result.winning_players)


class TestDeterminism:
    def test_identical_miners_agree(self) -> None:
        first = Miner(MiningConfig(), base_seed=42)
        second = Miner(MiningConfig(), base_seed=42)
        for _ in range(3):
            a = first.seal(PAYLOAD)
            b = second.seal(PAYLOAD)
            assert a.total_games == b.total_games
            assert a.final_seed == b.final_seed
            assert a.rounds == b.rounds

    def test_base_seed_changes_block_seed(self) -> None:
        assert Miner(base_seed=1).block_seed(PAYLOAD) != Miner(base_seed=2).block_seed(PAYLOAD)

    def test_payload_changes_block_seed(self, miner: Miner) -> None:
        assert miner.block_seed(PAYLOAD) != miner.block_seed(PAYLOAD + "x")

    def test_block_seed_accepts_bytes(self, miner: Miner) -> None:
        assert miner.block_seed(PAYLOAD) == miner.block_seed(PAYLOAD.encode("utf-8"))

    def test_cumulative_games_feed_next_seed(self, miner: Miner) -> None:
        first = miner.seal(PAYLOAD)
        second = miner.seal(PAYLOAD)
        assert first.final_seed != second.final_seed

    def test_base_seed_is_masked_to_64_bits(self) -> None:
        assert Miner(base_seed=2**64 + 5).base_seed == 5


class TestTimeout:
    def test_round_ceiling_raises(self) -> None:
        miner = Miner(MiningConfig(total_players=3), base_seed=1, max_rounds=2)
        miner.players[0].required_wins = 10
        with pytest.raises(MiningTimeoutError, match="too many rounds"):
            miner.seal(PAYLOAD)

    def test_timeout_resets_progress_but_not_schedule(self) -> None:
        miner = Miner(MiningConfig(total_players=3), base_seed=1, max_rounds=2)
        miner.players[0].required_wins = 10
        with pytest.raises(MiningTimeoutError):
            miner.seal(PAYLOAD)
        assert miner.config.blocks_mined == 0
        assert all(p.current_wins == 0 for p in miner.players)
        assert miner.games_played > 0

    def test_quota_within_ceiling_succeeds(self) -> None:
        miner = Miner(MiningConfig(total_players=3), base_seed=1, max_rounds=10)
        miner.players[0].required_wins = 5
        result = miner.seal(PAYLOAD)
        assert result.rounds == 5
