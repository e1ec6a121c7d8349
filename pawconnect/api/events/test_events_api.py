# pawconnect/api/events/test_events_api.py
"""
이벤트 / 참가 / 초대 API 테스트
"""
import io
from datetime import timedelta

import pytest

from pawconnect.utils.datetime_utils import DateTimeUtils

@pytest.fixture
def people(db, make_user, auth_headers):
    for user_id in ('alice', 'bob', 'carol', 'dave'):
        make_user(user_id, user_id)
    db.collection('event_types').document('walk').set(
        {'event_type_id': 'walk', 'name': 'Walk', 'color': '#3FA34D', 'description': None, 'icon': 'paw'})
    db.collection('event_types').document('meetup').set(
        {'event_type_id': 'meetup', 'name': 'Meetup', 'color': '#F2A541', 'description': None, 'icon': None})
    return {user_id: auth_headers(user_id) for user_id in ('alice', 'bob', 'carol', 'dave')}

def _iso(days=0, hours=0):
    return DateTimeUtils.to_iso_string(DateTimeUtils.now() + timedelta(days=days, hours=hours))

def _create(client, headers, **overrides):
    body = {"title": "Morning walk", "event_type": "walk", "date_start": _iso(days=2),
            "location": "Parc de la Tête d'Or, Lyon"}
    body.update(overrides)
    return client.post('/api/events', json=body, headers=headers)

def _befriend(db, user_id, friend_id):
    now = DateTimeUtils.now()
    db.collection('friends').document(f"{user_id}-{friend_id}").set({
        'friendship_id': f"{user_id}-{friend_id}", 'user_id': user_id, 'friend_id': friend_id,
        'status': 'accepted', 'created_at': now, 'updated_at': now,
    })

def test_event_types_sorted_by_name(client, people):
    types = client.get('/api/events/types').get_json()['event_types']
    assert [t['name'] for t in types] == ['Meetup', 'Walk']

def test_create_event(client, people):
    response = _create(client, people['alice'], max_participants=10)

    assert response.status_code == 201
    event = response.get_json()
    assert event['organizer']['username'] == 'alice'
    assert event['event_type_info']['color'] == '#3FA34D'
    assert event['participants_count'] == 0
    assert event['is_active'] is True

def test_create_event_validation(client, people):
    bad_dates = _create(client, people['alice'], date_start=_iso(days=2), date_end=_iso(days=1))
    assert bad_dates.status_code == 400
    assert 'date_end' in bad_dates.get_json()['details']

    unknown_type = _create(client, people['alice'], event_type='rodeo')
    assert unknown_type.status_code == 400
    assert unknown_type.get_json()['error_code'] == 'INVALID_EVENT_TYPE'

def test_list_upcoming_public_events_with_filters(client, db, people):
    soon = _create(client, people['alice'], title="Soon", date_start=_iso(days=1)).get_json()
    later = _create(client, people['alice'], title="Later", event_type='meetup',
                    date_start=_iso(days=5), location="Paris").get_json()
    _create(client, people['alice'], title="Private", is_public=False)
    past = _create(client, people['alice'], title="Past").get_json()
    db.collection('events').document(past['event_id']).update(
        {'date_start': DateTimeUtils.now() - timedelta(days=1)})

    titles = [e['title'] for e in client.get('/api/events').get_json()['events']]
    assert titles == ['Soon', 'Later']

    by_type = client.get('/api/events?type=meetup').get_json()['events']
    assert [e['event_id'] for e in by_type] == [later['event_id']]

    by_location = client.get('/api/events?location=lyon').get_json()['events']
    assert [e['event_id'] for e in by_location] == [soon['event_id']]

    date_to = DateTimeUtils.to_iso_string(DateTimeUtils.now() + timedelta(days=3))
    in_window = client.get('/api/events', query_string={'date_to': date_to}).get_json()['events']
    assert [e['title'] for e in in_window] == ['Soon']

    paged = client.get('/api/events?limit=1&offset=1').get_json()['events']
    assert [e['title'] for e in paged] == ['Later']

    assert client.get('/api/events?date_from=yesterday-ish').status_code == 400

def test_join_leave_and_capacity(client, db, people):
    event = _create(client, people['alice'], max_participants=2).get_json()
    event_id = event['event_id']

    joined = client.post(f'/api/events/{event_id}/join', json={"notes": "Bringing treats"}, headers=people['bob'])
    assert joined.status_code == 201
    assert joined.get_json()['participation_id'] == f"{event_id}_bob"
    assert client.post(f'/api/events/{event_id}/join', headers=people['bob']).status_code == 409

    assert client.post(f'/api/events/{event_id}/join', headers=people['carol']).status_code == 201
    full = client.post(f'/api/events/{event_id}/join', headers=people['dave'])
    assert full.status_code == 409
    assert full.get_json()['error_code'] == 'JOIN_NOT_ALLOWED'

    detail = client.get(f'/api/events/{event_id}', headers=people['bob']).get_json()
    assert detail['participants_count'] == 2
    assert detail['is_participating'] is True
    assert detail['user_participation']['notes'] == 'Bringing treats'

    participants = client.get(f'/api/events/{event_id}/participants').get_json()['participants']
    assert [p['user']['username'] for p in participants] == ['bob', 'carol']

    notifications = [(n['user_id'], n['type']) for n in db.docs('notifications').values()]
    assert sorted(notifications) == [('alice', 'event_join'), ('alice', 'event_join')]

    assert client.delete(f'/api/events/{event_id}/join', headers=people['bob']).status_code == 204
    assert client.delete(f'/api/events/{event_id}/join', headers=people['bob']).status_code == 404
    assert client.post(f'/api/events/{event_id}/join', headers=people['dave']).status_code == 201

def test_update_participation_is_self_only(client, people):
    event_id = _create(client, people['alice']).get_json()['event_id']
    participation_id = client.post(f'/api/events/{event_id}/join', headers=people['bob']).get_json()['participation_id']

    url = f'/api/events/participations/{participation_id}'
    assert client.patch(url, json={"status": "cancelled"}, headers=people['carol']).status_code == 403
    assert client.patch(url, json={"status": "maybe"}, headers=people['bob']).status_code == 400

    updated = client.patch(url, json={"status": "cancelled"}, headers=people['bob'])
    assert updated.status_code == 200
    assert updated.get_json()['status'] == 'cancelled'
    assert client.get(f'/api/events/{event_id}').get_json()['participants_count'] == 0

def test_my_events(client, people):
    organized = _create(client, people['alice']).get_json()
    client.post(f"/api/events/{organized['event_id']}/join", headers=people['bob'])

    mine = client.get('/api/events/mine?type=organized', headers=people['alice']).get_json()['events']
    assert [e['event_id'] for e in mine] == [organized['event_id']]

    participating = client.get('/api/events/mine', headers=people['bob']).get_json()['events']
    assert [e['event_id'] for e in participating] == [organized['event_id']]

    assert client.get('/api/events/mine?type=everything', headers=people['bob']).status_code == 400

def test_update_and_delete_are_organizer_only(client, db, people):
    event_id = _create(client, people['alice']).get_json()['event_id']
    client.post(f'/api/events/{event_id}/join', headers=people['bob'])

    assert client.patch(f'/api/events/{event_id}', json={"title": "Mine now"}, headers=people['bob']).status_code == 403
    updated = client.patch(f'/api/events/{event_id}', json={"title": "Evening walk"}, headers=people['alice'])
    assert updated.get_json()['title'] == 'Evening walk'

    assert client.delete(f'/api/events/{event_id}', headers=people['bob']).status_code == 403
    assert client.delete(f'/api/events/{event_id}', headers=people['alice']).status_code == 204
    assert db.docs('events') == {}
    assert db.docs('event_participants') == {}
    assert client.get(f'/api/events/{event_id}').status_code == 404

def test_invitable_friends_and_invite(client, db, people):
    event = _create(client, people['alice']).get_json()
    event_id = event['event_id']
    _befriend(db, 'alice', 'bob')
    _befriend(db, 'carol', 'alice')
    client.post(f'/api/events/{event_id}/join', headers=people['carol'])

    invitable = client.get(f'/api/events/{event_id}/invitable-friends', headers=people['alice']).get_json()['friends']
    assert [f['other_user']['user_id'] for f in invitable] == ['bob']

    invited = client.post(f'/api/events/{event_id}/invite', json={"friend_id": "bob"}, headers=people['alice'])
    assert invited.status_code == 201
    body = invited.get_json()
    assert body['conversation_id'] == 'alice_bob'
    assert "Morning walk" in body['message']['content']
    assert f"https://pawconnect.test/events/{event_id}" in body['message']['content']

    invite_notifications = [n for n in db.docs('notifications').values() if n['type'] == 'event_invite']
    assert [(n['user_id'], n['from_user_id']) for n in invite_notifications] == [('bob', 'alice')]
    assert db.docs('conversations')['alice_bob']['last_message_sender_id'] == 'alice'

    assert client.post('/api/events/missing/invite', json={"friend_id": "bob"}, headers=people['alice']).status_code == 400

def test_upload_event_image(client, people):
    ok = client.post('/api/events/images',
                     data={'file': (io.BytesIO(b'png'), 'walk.png', 'image/png')},
                     content_type='multipart/form-data', headers=people['alice'])
    assert ok.status_code == 201
    assert '/event-images/alice/' in ok.get_json()['url']

    not_image = client.post('/api/events/images',
                            data={'file': (io.BytesIO(b'text'), 'notes.txt', 'text/plain')},
                            content_type='multipart/form-data', headers=people['alice'])
    assert not_image.status_code == 400

def test_delete_event_with_more_participants_than_one_batch(client, db, people):
    event_id = _create(client, people['alice']).get_json()['event_id']
    for index in range(505):
        participation_id = f"{event_id}_guest{index}"
        db.collection('event_participants').document(participation_id).set({
            'participation_id': participation_id, 'event_id': event_id,
            'user_id': f"guest{index}", 'status': 'confirmed', 'created_at': DateTimeUtils.now(),
        })

    assert client.delete(f'/api/events/{event_id}', headers=people['alice']).status_code == 204
    assert db.docs('events') == {}
    assert db.docs('event_participants') == {}

def test_reconfirming_participation_respects_capacity(client, people):
    event_id = _create(client, people['alice'], max_participants=1).get_json()['event_id']
    bob_url = f'/api/events/participations/{event_id}_bob'

    assert client.post(f'/api/events/{event_id}/join', headers=people['bob']).status_code == 201
    assert client.patch(bob_url, json={"status": "cancelled"}, headers=people['bob']).status_code == 200
    assert client.post(f'/api/events/{event_id}/join', headers=people['carol']).status_code == 201

    full = client.patch(bob_url, json={"status": "confirmed"}, headers=people['bob'])
    assert full.status_code == 409
    assert full.get_json()['error_code'] == 'EVENT_FULL'
    assert client.get(f'/api/events/{event_id}').get_json()['participants_count'] == 1

    # 메모만 바꾸는 수정은 정원과 무관
    assert client.patch(bob_url, json={"notes": "maybe next time"}, headers=people['bob']).status_code == 200

    assert client.delete(f'/api/events/{event_id}/join', headers=people['carol']).status_code == 204
    confirmed = client.patch(bob_url, json={"status": "confirmed"}, headers=people['bob'])
    assert confirmed.status_code == 200
    assert confirmed.get_json()['status'] == 'confirmed'
    assert client.get(f'/api/events/{event_id}').get_json()['participants_count'] == 1

def test_offset_without_limit_returns_one_page(client, people):
    for day in range(1, 14):
        _create(client, people['alice'], title=f"Walk {day:02d}", date_start=_iso(days=day))

    assert len(client.get('/api/events').get_json()['events']) == 13

    page = client.get('/api/events?offset=2').get_json()['events']
    assert [e['title'] for e in page] == [f"Walk {day:02d}" for day in range(3, 13)]

    by_location = client.get('/api/events?offset=2&location=lyon').get_json()['events']
    assert len(by_location) == 10
