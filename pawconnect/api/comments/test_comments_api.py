# pawconnect/api/comments/test_comments_api.py
"""
댓글 API 테스트
"""
import pytest

@pytest.fixture
def post_id(db, make_user):
    make_user('owner', 'owner')
    make_user('guest', 'guest')
    make_user('other', 'other')
    db.collection('posts').document('p1').set({
        'post_id': 'p1', 'pet_id': 'pet1', 'owner_id': 'owner',
        'pet': {'pet_id': 'pet1', 'name': 'Mochi', 'species': 'cat'},
        'is_private': False,
    })
    return 'p1'

def test_create_and_list_comments(client, db, post_id, auth_headers):
    first = client.post(f'/api/posts/{post_id}/comments', json={"content": "so fluffy"}, headers=auth_headers('guest'))
    second = client.post(f'/api/posts/{post_id}/comments', json={"content": "thanks!"}, headers=auth_headers('owner'))

    assert first.status_code == 201
    assert first.get_json()['user']['username'] == 'guest'
    assert second.status_code == 201

    comments = client.get(f'/api/posts/{post_id}/comments').get_json()['comments']
    assert [c['content'] for c in comments] == ['so fluffy', 'thanks!']

    # 본인 게시글에 단 댓글은 알림을 만들지 않음
    notifications = list(db.docs('notifications').values())
    assert [(n['user_id'], n['from_user_id'], n['type']) for n in notifications] == [('owner', 'guest', 'comment')]

def test_comment_validation_and_missing_post(client, post_id, auth_headers):
    headers = auth_headers('guest')
    assert client.post(f'/api/posts/{post_id}/comments', json={"content": ""}, headers=headers).status_code == 400
    assert client.post('/api/posts/missing/comments', json={"content": "hi"}, headers=headers).status_code == 404

def test_delete_comment_permissions(client, db, post_id, auth_headers):
    created = client.post(f'/api/posts/{post_id}/comments', json={"content": "hello"}, headers=auth_headers('guest'))
    comment_id = created.get_json()['comment_id']

    assert client.delete(f'/api/comments/{comment_id}', headers=auth_headers('other')).status_code == 403
    # 게시글 소유자는 다른 사람의 댓글도 삭제할 수 있음
    assert client.delete(f'/api/comments/{comment_id}', headers=auth_headers('owner')).status_code == 204
    assert client.delete(f'/api/comments/{comment_id}', headers=auth_headers('owner')).status_code == 404
    assert db.docs('comments') == {}
