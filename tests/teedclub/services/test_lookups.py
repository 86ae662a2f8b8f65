"""Tests for teedclub.services.lookups — profile and equipment signals."""
from unittest.mock import MagicMock, patch

from teedclub.models.equipment import BagEquipment
from teedclub.models.profile import Profile
from teedclub.services.lookups import (
    lookup_equipment_signal, lookup_profile_signal, lookup_signals,
)


def _add_profile(db_session, **overrides):
    fields = dict(id='u-1', email='member@teed.club', display_name='Member', bio='Gear head',
                  location='Mesa', handicap=12.4, favorite_club='Driver', avatar_url=None)
    fields.update(overrides)
    profile = Profile(**fields)
    db_session.add(profile)
    db_session.commit()
    return profile


class TestLookupProfileSignal:

    def test_found(self, db_session):
        _add_profile(db_session)
        signal = lookup_profile_signal('member@teed.club')
        assert signal.user_id == 'u-1'
        assert signal.profile_completion_percentage() == 83

    def test_email_case_insensitive(self, db_session):
        _add_profile(db_session)
        assert lookup_profile_signal('Member@Teed.club') is not None

    def test_missing(self):
        assert lookup_profile_signal('nobody@teed.club') is None

    def test_blank_email(self):
        assert lookup_profile_signal('') is None

    def test_failure_returns_none(self):
        broken = MagicMock()
        broken.query.side_effect = RuntimeError('db down')
        with patch('teedclub.services.lookups.get_session', return_value=broken):
            assert lookup_profile_signal('member@teed.club') is None
        broken.close.assert_called_once()


class TestLookupEquipmentSignal:

    def test_aggregates_bag(self, db_session):
        _add_profile(db_session)
        db_session.add_all([
            BagEquipment(user_id='u-1', brand='Titleist', model='TSR3', photo_count=0),
            BagEquipment(user_id='u-1', brand='titleist ', model='Vokey SM10', photo_count=2),
            BagEquipment(user_id='u-1', brand='Scotty Cameron', model='Phantom', photo_count=0),
        ])
        db_session.commit()
        signal = lookup_equipment_signal('u-1')
        assert signal.item_count == 3
        assert signal.has_photo is True
        assert signal.unique_brands == 2

    def test_empty_bag_is_zero_signal(self, db_session):
        _add_profile(db_session)
        signal = lookup_equipment_signal('u-1')
        assert signal.item_count == 0
        assert signal.has_photo is False

    def test_no_user(self):
        assert lookup_equipment_signal(None) is None

    def test_failure_returns_none(self):
        broken = MagicMock()
        broken.query.side_effect = RuntimeError('db down')
        with patch('teedclub.services.lookups.get_session', return_value=broken):
            assert lookup_equipment_signal('u-1') is None


class TestLookupSignals:

    def test_member(self, db_session):
        _add_profile(db_session)
        db_session.add(BagEquipment(user_id='u-1', brand='Ping', model='G430'))
        db_session.commit()
        profile, equipment = lookup_signals('member@teed.club')
        assert profile.email == 'member@teed.club'
        assert equipment.item_count == 1

    def test_stranger(self):
        assert lookup_signals('stranger@teed.club') == (None, None)
