"""Tests for services/recalculation.py: the confirm / recalc / rescoring pipeline."""

from __future__ import annotations

import threading

import pytest
from sqlalchemy.exc import OperationalError

from app.db.models.championship_member import ChampionshipMember
from app.db.models.race import Race
from app.db.models.race_point import RacePoint
from app.schemas.race_result import RaceResultEntry, RaceResultInput
from app.services import recalculation
from app.services.errors import (
    InvalidScoringError,
    RaceLockedError,
    RaceNotConfirmedError,
    RaceResultMissingError,
    RecalculationConflictError,
    UpstreamUnavailableError,
)
from app.services.recalculation import (
    RecalculationLocks,
    confirm_race,
    recalculate_race,
    refresh_standings,
    set_member_ban,
    unconfirm_race,
    update_scoring,
)
from app.services.results import get_race_results, replace_race_results
from app.services.scoring_rules import DEFAULT_SCORING, get_scoring_rules
from app.services.standings import get_standings

from conftest import (
    make_championship,
    make_drivers,
    make_race,
    make_season,
    make_user,
    member,
    predict,
    set_results,
)


@pytest.fixture
def league(db):
    """Temporada con 10 pilotos, un campeonato de tres jugadores y una carrera con resultado."""
    season = make_season(db)
    drivers = [d.id for d in make_drivers(db, season)]
    admin = make_user(db, "Admin")
    ana = make_user(db, "Ana")
    bruno = make_user(db, "Bruno")
    championship = make_championship(db, season, admin, members=(ana, bruno))
    race = make_race(db, season, round_number=1)
    set_results(db, race, podium=drivers[:6], pole=drivers[0], fastest_lap=drivers[2], last_place=drivers[9])
    return {
        "season": season,
        "drivers": drivers,
        "admin": admin,
        "ana": ana,
        "bruno": bruno,
        "championship": championship,
        "race": race,
    }


def _points_rows(db, championship, race):
    rows = (
        db.query(RacePoint)
        .filter(RacePoint.championship_id == championship.id, RacePoint.race_id == race.id)
        .order_by(RacePoint.user_id)
        .all()
    )
    return [
        (
            r.id, r.user_id, r.prediction_id, r.points,
            r.guessed_p1, r.guessed_p2, r.guessed_p3, r.guessed_p4, r.guessed_p5,
            r.guessed_p6, r.guessed_pole, r.guessed_fastest_lap, r.guessed_last_place,
        )
        for r in rows
    ]


def _totals(db, championship):
    return {row["user_id"]: row["total_points"] for row in get_standings(db, championship.id)}


class TestConfirmRace:
    def test_every_member_gets_a_row(self, db, league):
        d = league["drivers"]
        predict(db, league["championship"], league["race"], league["ana"], positions=d[:3], pole=d[0])

        confirm_race(db, league["race"].id)

        rows = {r[1]: r for r in _points_rows(db, league["championship"], league["race"])}
        assert set(rows) == {league["admin"].id, league["ana"].id, league["bruno"].id}
        assert rows[league["ana"].id][3] == 10 + 6 + 4 + 3

    def test_member_without_prediction_gets_zero_row(self, db, league):
        confirm_race(db, league["race"].id)

        row = (
            db.query(RacePoint)
            .filter(RacePoint.user_id == league["bruno"].id)
            .one()
        )
        assert row.points == 0
        assert row.prediction_id is None
        assert not any(getattr(row, f"guessed_{c}") for c in (
            "p1", "p2", "p3", "p4", "p5", "p6", "pole", "fastest_lap", "last_place"
        ))

    def test_marks_race_confirmed_and_ranks(self, db, league):
        d = league["drivers"]
        predict(db, league["championship"], league["race"], league["bruno"], positions=d[:1])

        race = confirm_race(db, league["race"].id)

        assert race.is_result_confirmed is True
        standings = get_standings(db, league["championship"].id)
        assert [s["user_id"] for s in standings] == [
            league["bruno"].id, league["admin"].id, league["ana"].id,
        ]
        assert [s["position"] for s in standings] == [1, 2, 3]

    def test_running_twice_gives_identical_rows(self, db, league):
        d = league["drivers"]
        predict(db, league["championship"], league["race"], league["ana"], positions=d[:6], pole=d[1])

        confirm_race(db, league["race"].id)
        first = _points_rows(db, league["championship"], league["race"])
        recalculate_race(db, league["race"].id)
        second = _points_rows(db, league["championship"], league["race"])

        assert first == second

    def test_correction_overwrites_instead_of_accumulating(self, db, league):
        d = league["drivers"]
        predict(db, league["championship"], league["race"], league["ana"], positions=d[:1])
        confirm_race(db, league["race"].id)
        assert _totals(db, league["championship"])[league["ana"].id] == 10

        unconfirm_race(db, league["race"].id)
        set_results(db, league["race"], podium=[d[5], d[0]], pole=d[0], fastest_lap=d[2], last_place=d[9])
        confirm_race(db, league["race"].id)

        assert _totals(db, league["championship"])[league["ana"].id] == 0
        assert db.query(RacePoint).filter(RacePoint.user_id == league["ana"].id).count() == 1

    def test_without_results_nothing_is_committed(self, db, league):
        race = make_race(db, league["season"], round_number=2)

        with pytest.raises(RaceResultMissingError):
            confirm_race(db, race.id)

        db.refresh(race)
        assert race.is_result_confirmed is False
        assert db.query(RacePoint).filter(RacePoint.race_id == race.id).count() == 0

    def test_upstream_failure_rolls_everything_back(self, db, league, monkeypatch):
        confirm_race(db, league["race"].id)
        before = _points_rows(db, league["championship"], league["race"])
        race2 = make_race(db, league["season"], round_number=2)
        set_results(db, race2, podium=league["drivers"][:6])

        def _boom(*args, **kwargs):
            raise OperationalError("SELECT ...", {}, Exception("database is down"))

        monkeypatch.setattr(recalculation, "load_race_results", _boom)

        with pytest.raises(UpstreamUnavailableError):
            confirm_race(db, race2.id)

        db.refresh(race2)
        assert race2.is_result_confirmed is False
        assert db.query(RacePoint).filter(RacePoint.race_id == race2.id).count() == 0
        assert _points_rows(db, league["championship"], league["race"]) == before

    def test_rows_of_former_members_are_removed(self, db, league):
        confirm_race(db, league["race"].id)
        db.delete(member(db, league["championship"], league["bruno"]))
        db.commit()

        recalculate_race(db, league["race"].id)

        user_ids = [r[1] for r in _points_rows(db, league["championship"], league["race"])]
        assert league["bruno"].id not in user_ids

    def test_only_confirmed_races_count(self, db, league):
        d = league["drivers"]
        predict(db, league["championship"], league["race"], league["ana"], positions=d[:1])
        confirm_race(db, league["race"].id)

        unconfirm_race(db, league["race"].id)

        assert _totals(db, league["championship"])[league["ana"].id] == 0
        # las filas siguen ahí, solo dejan de contar
        assert db.query(RacePoint).filter(RacePoint.race_id == league["race"].id).count() == 3


class TestRecalculateRace:
    def test_pending_race_is_rejected(self, db, league):
        with pytest.raises(RaceNotConfirmedError):
            recalculate_race(db, league["race"].id)

    def test_confirmation_is_read_again_once_locked(self, db, league):
        race = confirm_race(db, league["race"].id)
        # Otra petición la desconfirma; el objeto en memoria sigue diciendo True
        db.query(Race).filter(Race.id == race.id).update(
            {Race.is_result_confirmed: False}, synchronize_session=False
        )
        db.commit()
        assert race.is_result_confirmed is True

        with pytest.raises(RaceNotConfirmedError):
            recalculate_race(db, race.id)


class TestUpdateScoring:
    def test_pole_weight_change_reapplies_to_every_race(self, db, league):
        d = league["drivers"]
        championship = league["championship"]
        race2 = make_race(db, league["season"], round_number=2)
        set_results(db, race2, podium=d[3:9], pole=d[0], fastest_lap=d[4], last_place=d[1])

        for race in (league["race"], race2):
            predict(db, championship, race, league["ana"], pole=d[0])
            predict(db, championship, race, league["bruno"], pole=d[5])
            confirm_race(db, race.id)

        before = _totals(db, championship)
        update_scoring(db, championship, {**DEFAULT_SCORING.model_dump(), "points_pole": 5})
        after = _totals(db, championship)

        assert after[league["ana"].id] == before[league["ana"].id] + 4
        assert after[league["bruno"].id] == before[league["bruno"].id]
        assert get_scoring_rules(db, championship.id).points_pole == 5

    def test_invalid_weights_keep_previous_rules(self, db, league):
        confirm_race(db, league["race"].id)

        with pytest.raises(InvalidScoringError):
            update_scoring(db, league["championship"], {**DEFAULT_SCORING.model_dump(), "points_p1": -3})

        assert get_scoring_rules(db, league["championship"].id) == DEFAULT_SCORING

    def test_confirmed_races_are_read_with_standings_key_held(self, db, league, monkeypatch):
        championship = league["championship"]
        confirm_race(db, league["race"].id)
        standings_key = (championship.id, recalculation.STANDINGS_KEY)
        held_while_reading = []
        original = recalculation.confirmed_races

        def _confirmed_races(session, season_id):
            held_while_reading.append(recalculation.recalculation_locks.is_locked(standings_key))
            return original(session, season_id)

        monkeypatch.setattr(recalculation, "confirmed_races", _confirmed_races)

        update_scoring(db, championship, {**DEFAULT_SCORING.model_dump(), "points_pole": 5})

        assert held_while_reading == [True]

    def test_waits_for_a_confirmation_in_flight(self, db, league, monkeypatch):
        championship = league["championship"]
        monkeypatch.setattr(recalculation.recalculation_locks, "timeout", 0.05)

        # Una confirmación en curso tiene la clave de la clasificación
        with recalculation.recalculation_locks.hold([(championship.id, recalculation.STANDINGS_KEY)]):
            with pytest.raises(RecalculationConflictError):
                update_scoring(db, championship, {**DEFAULT_SCORING.model_dump(), "points_pole": 5})

        assert get_scoring_rules(db, championship.id) == DEFAULT_SCORING


def _join(db, championship, user):
    db.add(ChampionshipMember(championship_id=championship.id, user_id=user.id))
    db.commit()
    refresh_standings(db, championship)


def _leave(db, championship, user):
    db.delete(member(db, championship, user))
    db.commit()
    refresh_standings(db, championship)


class TestMembershipChanges:
    def test_joining_after_confirmation_gets_a_row(self, db, league):
        confirm_race(db, league["race"].id)
        carla = make_user(db, "Carla")

        _join(db, league["championship"], carla)

        row = db.query(RacePoint).filter(RacePoint.user_id == carla.id).one()
        assert row.race_id == league["race"].id
        assert row.points == 0
        assert _totals(db, league["championship"])[carla.id] == 0

    def test_leaving_removes_rows_right_away(self, db, league):
        confirm_race(db, league["race"].id)

        _leave(db, league["championship"], league["bruno"])

        assert db.query(RacePoint).filter(RacePoint.user_id == league["bruno"].id).count() == 0

    @pytest.mark.parametrize("recalculated_while_away", [False, True])
    def test_rejoining_restores_the_same_total(self, db, league, recalculated_while_away):
        d = league["drivers"]
        championship = league["championship"]
        predict(db, championship, league["race"], league["ana"], positions=d[:3], pole=d[0])
        confirm_race(db, league["race"].id)
        before = _totals(db, championship)[league["ana"].id]

        _leave(db, championship, league["ana"])
        if recalculated_while_away:
            recalculate_race(db, league["race"].id)
        _join(db, championship, league["ana"])

        assert before == 10 + 6 + 4 + 3
        assert _totals(db, championship)[league["ana"].id] == before
        assert db.query(RacePoint).filter(RacePoint.user_id == league["ana"].id).count() == 1


class TestBans:
    def test_ban_hides_member_and_unban_restores_total(self, db, league):
        d = league["drivers"]
        championship = league["championship"]
        predict(db, championship, league["race"], league["ana"], positions=d[:2])
        predict(db, championship, league["race"], league["bruno"], positions=d[:1])
        confirm_race(db, league["race"].id)
        before = _totals(db, championship)

        set_member_ban(db, championship, league["ana"].id, True)

        standings = get_standings(db, championship.id)
        assert league["ana"].id not in [s["user_id"] for s in standings]
        assert [s["position"] for s in standings] == [1, 2]
        assert _totals(db, championship)[league["bruno"].id] == before[league["bruno"].id]
        assert member(db, championship, league["ana"]).position is None
        assert db.query(RacePoint).filter(RacePoint.user_id == league["ana"].id).count() == 1

        set_member_ban(db, championship, league["ana"].id, False)

        assert _totals(db, championship) == before

    def test_banned_member_rows_follow_rule_changes(self, db, league):
        d = league["drivers"]
        championship = league["championship"]
        predict(db, championship, league["race"], league["ana"], pole=d[0])
        confirm_race(db, league["race"].id)
        set_member_ban(db, championship, league["ana"].id, True)

        update_scoring(db, championship, {**DEFAULT_SCORING.model_dump(), "points_pole": 10})
        set_member_ban(db, championship, league["ana"].id, False)

        assert _totals(db, championship)[league["ana"].id] == 10

    def test_unknown_member(self, db, league):
        with pytest.raises(LookupError):
            set_member_ban(db, league["championship"], 999, True)


class TestRecalculationLocks:
    def test_same_key_conflicts(self):
        locks = RecalculationLocks(timeout=0.05)
        with locks.hold([(1, 1)]):
            with pytest.raises(RecalculationConflictError):
                with locks.hold([(1, 1)]):
                    pass
        assert not locks.is_locked((1, 1))

    def test_different_keys_run_in_parallel(self):
        locks = RecalculationLocks(timeout=0.05)
        entered = threading.Event()

        def _other():
            with locks.hold([(2, 1)]):
                entered.set()

        with locks.hold([(1, 1)]):
            worker = threading.Thread(target=_other)
            worker.start()
            worker.join(timeout=1)

        assert entered.is_set()

    def test_partial_acquire_is_released_on_conflict(self):
        locks = RecalculationLocks(timeout=0.05)
        with locks.hold([(1, 2)]):
            with pytest.raises(RecalculationConflictError):
                with locks.hold([(1, 1), (1, 2)]):
                    pass
            assert not locks.is_locked((1, 1))

    def test_waiting_trigger_runs_after_the_first(self):
        locks = RecalculationLocks(timeout=2)
        order = []
        release = threading.Event()

        def _first():
            with locks.hold([(1, 1)]):
                order.append("first")
                release.wait(timeout=1)

        worker = threading.Thread(target=_first)
        worker.start()
        while not locks.is_locked((1, 1)):
            pass
        release.set()
        with locks.hold([(1, 1)]):
            order.append("second")
        worker.join(timeout=1)

        assert order == ["first", "second"]

    def test_trigger_conflict_leaves_state_untouched(self, db, league):
        keys = [(league["championship"].id, league["race"].id)]
        with recalculation.recalculation_locks.hold(keys):
            original = recalculation.recalculation_locks.timeout
            recalculation.recalculation_locks.timeout = 0.05
            try:
                with pytest.raises(RecalculationConflictError):
                    confirm_race(db, league["race"].id)
            finally:
                recalculation.recalculation_locks.timeout = original

        db.refresh(league["race"])
        assert league["race"].is_result_confirmed is False
        assert db.query(ChampionshipMember).filter(ChampionshipMember.position.isnot(None)).count() == 0

    def test_released_keys_leave_the_registry(self):
        locks = RecalculationLocks(timeout=0.05)
        with locks.hold([(1, 1), (1, 0)]):
            assert len(locks) == 2
            assert locks.is_locked((1, 0))

        assert len(locks) == 0
        assert not locks.is_locked((1, 1))
        assert len(locks) == 0


class TestResultsEdit:
    def _single_entry(self, league):
        return RaceResultInput(entries=[RaceResultEntry(driver_id=league["drivers"][0], position=1)])

    def test_confirmation_is_read_again_once_locked(self, db, league):
        race = league["race"]
        # Otra petición la confirma; el objeto en memoria sigue diciendo False
        db.query(Race).filter(Race.id == race.id).update(
            {Race.is_result_confirmed: True}, synchronize_session=False
        )
        db.commit()
        assert race.is_result_confirmed is False

        with pytest.raises(RaceLockedError):
            replace_race_results(db, race, self._single_entry(league))

        assert len(get_race_results(db, race.id)) == 7

    def test_waits_for_the_race_keys(self, db, league, monkeypatch):
        race = league["race"]
        monkeypatch.setattr(recalculation.recalculation_locks, "timeout", 0.05)

        with recalculation.recalculation_locks.hold([(league["championship"].id, race.id)]):
            with pytest.raises(RecalculationConflictError):
                replace_race_results(db, race, self._single_entry(league))

        assert len(get_race_results(db, race.id)) == 7

    def test_pending_race_is_replaced(self, db, league):
        rows = replace_race_results(db, league["race"], self._single_entry(league))
        assert [(r.driver_id, r.position) for r in rows] == [(league["drivers"][0], 1)]
