from datetime import datetime, timedelta

import pytest

from portal.extensions import db
from portal.models import Category, Notification, SiteStats, Task, User


@pytest.fixture
def regular_user(make_user):
    return make_user(email='member@example.com')


def _create_category(client, headers, name, **extra):
    return client.post('/api/admin/categories', headers=headers, json={'display_name': name, **extra})


def _create_task(client, headers, category_id, title, **extra):
    payload = {'title': title, 'description': 'Steps to follow', 'category_id': category_id}
    payload.update(extra)
    return client.post('/api/admin/tasks', headers=headers, json=payload)


# -- access --------------------------------------------------------------------


def test_admin_routes_reject_regular_users(client, make_user, auth_headers):
    headers = auth_headers(make_user())
    response = client.get('/api/admin/categories', headers=headers)
    assert response.status_code == 403
    assert response.get_json()['error'] == 'Admin access required'


def test_admin_routes_require_login(client):
    assert client.get('/api/admin/paid-users').status_code == 401


# -- categories ----------------------------------------------------------------


def test_create_category_generates_camel_case_key(client, admin_headers):
    response = _create_category(client, admin_headers, 'Upon Arrival', estimated_time_frame='First week')

    assert response.status_code == 201
    category = response.get_json()['category']
    assert category['key'] == 'uponArrival'
    assert category['order'] == 1
    assert category['estimated_time_frame'] == 'First week'


def test_category_names_are_unique_ignoring_case(client, admin_headers):
    _create_category(client, admin_headers, 'Housing')
    response = _create_category(client, admin_headers, 'housing')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'A category with this name already exists'


def test_category_limit(client, admin_headers):
    for i in range(6):
        assert _create_category(client, admin_headers, f'Stage {i}').status_code == 201

    response = _create_category(client, admin_headers, 'One Too Many')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Maximum of 6 categories allowed'


def test_category_validation(client, admin_headers):
    assert _create_category(client, admin_headers, 'x' * 51).status_code == 400
    response = _create_category(client, admin_headers, 'Paperwork', estimated_time_frame='Someday')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid estimated time frame'


def test_update_category_notifies_users(client, app, admin_headers, regular_user):
    category_id = _create_category(client, admin_headers, 'Banking').get_json()['category']['id']

    response = client.patch(f'/api/admin/categories/{category_id}', headers=admin_headers,
                            json={'description': 'Open an account', 'color': '#10B981'})

    assert response.status_code == 200
    assert response.get_json()['category']['color'] == '#10B981'
    with app.app_context():
        updated = Notification.query.filter_by(user_id=regular_user, action='updated').one()
        assert updated.title == 'Category Updated'
        assert updated.changes == ['description', 'color']


def test_cannot_delete_last_category(client, app, admin_headers, seeded_category):
    response = client.delete(f'/api/admin/categories/{seeded_category}', headers=admin_headers)

    assert response.status_code == 400
    assert 'last category' in response.get_json()['error']


def test_delete_category_removes_its_tasks(client, app, admin_headers, seeded_category, make_task):
    other = _create_category(client, admin_headers, 'Later').get_json()['category']['id']
    make_task(seeded_category)
    make_task(seeded_category)

    response = client.delete(f'/api/admin/categories/{seeded_category}', headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json()['deleted_tasks'] == 2
    with app.app_context():
        assert Task.query.count() == 0
        assert [c.id for c in Category.query.all()] == [other]


def test_missing_category_is_404(client, admin_headers):
    assert client.get('/api/admin/categories/999', headers=admin_headers).status_code == 404


def test_move_and_reorder_categories(client, admin_headers):
    ids = [_create_category(client, admin_headers, name).get_json()['category']['id']
           for name in ('First', 'Second', 'Third')]

    response = client.patch(f'/api/admin/categories/{ids[2]}/order', headers=admin_headers, json={'new_order': 1})
    assert response.status_code == 200
    assert [c['id'] for c in response.get_json()['categories']] == [ids[2], ids[0], ids[1]]

    response = client.patch('/api/admin/categories/reorder', headers=admin_headers, json={
        'categories': [{'id': ids[0], 'order': 3}, {'id': ids[1], 'order': 1}, {'id': ids[2], 'order': 2}],
    })
    assert response.status_code == 200
    listed = client.get('/api/admin/categories', headers=admin_headers).get_json()['categories']
    assert [c['id'] for c in listed] == [ids[1], ids[2], ids[0]]

    bad = client.patch('/api/admin/categories/reorder', headers=admin_headers, json={'categories': 'nope'})
    assert bad.status_code == 400
    assert bad.get_json()['error'] == 'Invalid categories array'


# -- tasks -----------------------------------------------------------------------


def test_create_task_appends_and_slugs_key(client, admin_headers, seeded_category):
    first = _create_task(client, admin_headers, seeded_category, 'Open Bank Account')
    second = _create_task(client, admin_headers, seeded_category, 'Open bank account!')

    assert first.status_code == 201
    assert first.get_json()['task']['key'] == 'open-bank-account'
    assert first.get_json()['task']['order'] == 1
    assert second.get_json()['task']['key'] == 'open-bank-account-1'
    assert second.get_json()['task']['order'] == 2


def test_create_task_stores_links_tips_and_requirements(client, admin_headers, seeded_category):
    response = _create_task(
        client, admin_headers, seeded_category, 'Get SIM card',
        estimated_duration='1-2 hours',
        difficulty='easy',
        tips=['Bring your passport', ''],
        requirements=['Passport'],
        helpful_links=[{'title': 'Carrier list', 'url': 'https://example.org/carriers'}],
    )

    task = response.get_json()['task']
    assert task['difficulty'] == 'easy'
    assert task['tips'] == ['Bring your passport']
    assert task['requirements'] == ['Passport']
    assert task['helpful_links'] == [
        {'title': 'Carrier list', 'url': 'https://example.org/carriers', 'description': ''}
    ]
    assert task['category']['key'] == 'beforeArrival'


def test_create_task_validation(client, admin_headers, seeded_category):
    missing = client.post('/api/admin/tasks', headers=admin_headers, json={'title': 'No description'})
    assert missing.status_code == 400
    assert missing.get_json()['error'] == 'Title, description, and category are required'

    too_long = _create_task(client, admin_headers, seeded_category, 'x' * 51)
    assert too_long.get_json()['error'] == 'Title must be 50 characters or less'

    bad_link = _create_task(client, admin_headers, seeded_category, 'Linked',
                            helpful_links=[{'title': 'No URL'}])
    assert bad_link.status_code == 400

    unknown_category = _create_task(client, admin_headers, 999, 'Orphan')
    assert unknown_category.get_json()['error'] == 'Category does not exist'


def test_task_limit_per_category(client, admin_headers, seeded_category, make_task):
    for _ in range(12):
        make_task(seeded_category)

    response = _create_task(client, admin_headers, seeded_category, 'Thirteenth')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Maximum of 12 tasks per category allowed'


def test_task_notifications_merge_within_window(client, app, admin_headers, regular_user, seeded_category):
    task_id = _create_task(client, admin_headers, seeded_category, 'Register Address').get_json()['task']['id']

    client.patch(f'/api/admin/tasks/{task_id}', headers=admin_headers, json={'description': 'New text'})
    client.patch(f'/api/admin/tasks/{task_id}', headers=admin_headers, json={'difficulty': 'hard'})

    with app.app_context():
        notes = Notification.query.filter_by(user_id=regular_user).order_by(Notification.id).all()
        assert [n.action for n in notes] == ['created', 'updated']
        assert notes[0].title == 'New Task Added'
        assert notes[1].changes == ['description', 'difficulty']
        assert 'description, difficulty' in notes[1].message

        # Admins never receive content notifications.
        admin = User.query.filter_by(role='admin').one()
        assert Notification.query.filter_by(user_id=admin.id).count() == 0


def test_moving_task_to_other_category(client, app, admin_headers, regular_user, seeded_category, make_task):
    target = _create_category(client, admin_headers, 'Upon Arrival').get_json()['category']['id']
    make_task(target)
    task_id = make_task(seeded_category, title='Book flights')

    response = client.patch(f'/api/admin/tasks/{task_id}', headers=admin_headers, json={'category_id': target})

    assert response.status_code == 200
    task = response.get_json()['task']
    assert task['category_id'] == target
    assert task['order'] == 2
    with app.app_context():
        moved = Notification.query.filter_by(user_id=regular_user, title='Task Moved').one()
        assert moved.priority == 'low'
        assert '"Before Arrival" to "Upon Arrival"' in moved.message


def test_move_task_shifts_siblings(client, admin_headers, seeded_category, make_task):
    ids = [make_task(seeded_category, order=i) for i in (1, 2, 3, 4)]

    response = client.patch(f'/api/admin/tasks/{ids[3]}/order', headers=admin_headers, json={'new_order': 2})
    assert [t['id'] for t in response.get_json()['tasks']] == [ids[0], ids[3], ids[1], ids[2]]
    assert [t['order'] for t in response.get_json()['tasks']] == [1, 2, 3, 4]

    response = client.patch(f'/api/admin/tasks/{ids[0]}/order', headers=admin_headers, json={'new_order': 4})
    assert [t['id'] for t in response.get_json()['tasks']] == [ids[3], ids[1], ids[2], ids[0]]

    bad = client.patch(f'/api/admin/tasks/{ids[0]}/order', headers=admin_headers, json={'new_order': 0})
    assert bad.status_code == 400
    assert bad.get_json()['error'] == 'Invalid order value'


def test_reorder_tasks_limited_to_category(client, app, admin_headers, seeded_category, make_task):
    other = _create_category(client, admin_headers, 'Elsewhere').get_json()['category']['id']
    mine = make_task(seeded_category, order=1)
    foreign = make_task(other, order=1)

    response = client.patch('/api/admin/tasks/reorder', headers=admin_headers, json={
        'category_id': seeded_category,
        'tasks': [{'id': mine, 'order': 5}, {'id': foreign, 'order': 9}],
    })

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(Task, mine).order == 5
        assert db.session.get(Task, foreign).order == 1


def test_list_and_delete_tasks(client, app, admin_headers, regular_user, seeded_category, make_task):
    task_id = make_task(seeded_category)

    listed = client.get(f'/api/admin/tasks?category={seeded_category}', headers=admin_headers)
    assert [t['id'] for t in listed.get_json()['tasks']] == [task_id]

    assert client.delete(f'/api/admin/tasks/{task_id}', headers=admin_headers).status_code == 200
    assert client.get(f'/api/admin/tasks/{task_id}', headers=admin_headers).status_code == 404
    with app.app_context():
        removed = Notification.query.filter_by(user_id=regular_user, action='deleted').one()
        assert removed.priority == 'high'
        assert removed.type == 'warning'


# -- users -----------------------------------------------------------------------


def test_user_search_is_paginated_and_excludes_admins(client, admin_headers, make_user):
    for i in range(12):
        make_user(email=f'family{i}@example.com')
    make_user(email='family-admin@example.com', role='admin')

    page_one = client.get('/api/admin/users/search?email=FAMILY', headers=admin_headers).get_json()
    assert page_one['total_count'] == 12
    assert len(page_one['users']) == 10
    assert page_one['total_pages'] == 2
    assert page_one['has_next_page'] is True
    assert page_one['has_previous_page'] is False

    page_two = client.get('/api/admin/users/search?email=family&page=2', headers=admin_headers).get_json()
    assert len(page_two['users']) == 2
    assert page_two['has_next_page'] is False

    empty = client.get('/api/admin/users/search?email=', headers=admin_headers).get_json()
    assert empty['users'] == [] and empty['total_count'] == 0


def test_assign_paid_package_sets_a_year_and_counts(client, app, admin_headers, regular_user):
    before = datetime.utcnow()
    response = client.patch(f'/api/admin/users/{regular_user}', headers=admin_headers, json={'package': 'essential'})

    assert response.status_code == 200
    body = response.get_json()
    assert body['user']['package'] == 'essential'
    assert body['paid_user_count'] == 1
    with app.app_context():
        user = db.session.get(User, regular_user)
        assert user.package_activated_at >= before
        assert user.package_expires_at - user.package_activated_at == timedelta(days=365)

    # paid -> paid does not count twice
    again = client.patch(f'/api/admin/users/{regular_user}', headers=admin_headers, json={'package': 'premium'})
    assert again.get_json()['paid_user_count'] == 1

    back = client.patch(f'/api/admin/users/{regular_user}', headers=admin_headers, json={'package': 'free'})
    assert back.get_json()['paid_user_count'] == 0
    assert back.get_json()['user']['package_expires_at'] is None

    assert client.get('/api/admin/paid-users', headers=admin_headers).get_json()['paid_user_count'] == 0


def test_legacy_package_names_are_accepted(client, admin_headers, regular_user):
    response = client.patch(f'/api/admin/users/{regular_user}', headers=admin_headers, json={'package': 'plus'})
    assert response.get_json()['user']['package'] == 'premium'


def test_invalid_package_is_rejected(client, admin_headers, regular_user):
    response = client.patch(f'/api/admin/users/{regular_user}', headers=admin_headers, json={'package': 'gold'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid package type'


def test_paid_counter_never_goes_negative(client, app, admin_headers, make_user):
    # Paid before the counter existed.
    user_id = make_user(package='premium', expires_at=datetime(2099, 1, 1))

    response = client.patch(f'/api/admin/users/{user_id}', headers=admin_headers, json={'package': 'free'})

    assert response.get_json()['paid_user_count'] == 0
    with app.app_context():
        assert db.session.get(SiteStats, SiteStats.GLOBAL_ID).paid_user_count == 0


def test_delete_user_blocked_while_paid(client, app, admin_headers, make_user):
    paid = make_user(package='essential', expires_at=datetime(2099, 1, 1))
    lapsed = make_user(package='essential', expires_at=datetime(2020, 1, 1))

    blocked = client.delete(f'/api/admin/users/{paid}', headers=admin_headers)
    assert blocked.status_code == 400
    assert blocked.get_json()['error'] == 'Cannot delete user with active plan'

    assert client.delete(f'/api/admin/users/{lapsed}', headers=admin_headers).status_code == 200
    assert client.delete(f'/api/admin/users/{lapsed}', headers=admin_headers).status_code == 404
    with app.app_context():
        assert db.session.get(User, lapsed) is None


# -- custom notifications ------------------------------------------------------


def test_recipient_list_contains_only_users(client, admin_headers, make_user):
    make_user(email='one@example.com', first_name='Ana')
    make_user(email='two@example.com', first_name='Ben')

    users = client.get('/api/admin/notifications', headers=admin_headers).get_json()['users']
    assert [u['email'] for u in users] == ['one@example.com', 'two@example.com']


def test_send_custom_notification_to_everyone(client, app, admin_headers, make_user):
    make_user()
    make_user()

    response = client.post('/api/admin/notifications', headers=admin_headers, json={
        'title': '<b>Office closed</b>',
        'message': 'Back on Monday<script>x</script>',
        'priority': 'high',
        'action_url': '/dashboard',
    })

    assert response.status_code == 201
    assert response.get_json()['recipients'] == 2
    with app.app_context():
        notes = Notification.query.all()
        assert len(notes) == 2
        assert notes[0].title == 'Office closed'
        assert '<' not in notes[0].message
        assert notes[0].action_required is True
        assert notes[0].action_url == '/dashboard'


def test_send_custom_notification_to_selected_users(client, app, admin_headers, make_user):
    chosen = make_user()
    make_user()

    response = client.post('/api/admin/notifications', headers=admin_headers, json={
        'title': 'Documents ready', 'message': 'Pick them up', 'target_user_ids': [chosen],
    })

    assert response.get_json()['recipients'] == 1
    with app.app_context():
        assert [n.user_id for n in Notification.query.all()] == [chosen]


def test_custom_notification_rejects_unsafe_urls_and_bad_targets(client, admin_headers, make_user):
    make_user()
    base = {'title': 'Hi', 'message': 'There'}

    for url in ('javascript:alert(1)', 'https://evil.example.net/x', '//evil.example.net'):
        response = client.post('/api/admin/notifications', headers=admin_headers, json={**base, 'action_url': url})
        assert response.status_code == 400, url
        assert response.get_json()['error'] == 'Invalid or unauthorized action URL'

    assert client.post('/api/admin/notifications', headers=admin_headers,
                       json={**base, 'type': 'shout'}).status_code == 400
    assert client.post('/api/admin/notifications', headers=admin_headers,
                       json={**base, 'target_user_ids': 'all'}).status_code == 400
    assert client.post('/api/admin/notifications', headers=admin_headers,
                       json={**base, 'target_user_ids': [424242]}).status_code == 404
    assert client.post('/api/admin/notifications', headers=admin_headers,
                       json={'title': 'Only title'}).status_code == 400
