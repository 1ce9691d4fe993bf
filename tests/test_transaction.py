import doctx
import pytest

from doctx.transaction import READ_AFTER_WRITE_ERROR


def test_read_then_write(client, database):

    database.put('accounts/alice', {'balance': 100})
    alice = client.doc('accounts/alice')

    transaction = client.transaction()
    transaction.begin()

    assert transaction.phase is doctx.Phase.READING

    snapshot = transaction.get(alice)
    assert snapshot.exists
    assert snapshot.get('balance') == 100

    transaction.update(alice, {'balance': 90})
    assert transaction.phase is doctx.Phase.WRITING

    results = transaction.commit()
    assert len(results) == 1
    assert database.fields_of('accounts/alice') == {'balance': 90}


def test_read_after_write(client, database):

    alice = client.doc('accounts/alice')
    bob = client.doc('accounts/bob')

    transaction = client.transaction()
    transaction.begin()
    transaction.create(alice, {'balance': 1})

    with pytest.raises(doctx.SequencingError) as error:
        transaction.get(alice)

    assert str(error.value) == READ_AFTER_WRITE_ERROR

    with pytest.raises(doctx.SequencingError):
        transaction.get_all(bob)

    with pytest.raises(doctx.SequencingError):
        transaction.get(client.collection('accounts'))

    assert database.calls('BATCH_GET') == []


def test_read_write_read(client, database):

    database.put('accounts/alice', {'balance': 100})
    alice = client.doc('accounts/alice')

    transaction = client.transaction()
    transaction.begin()
    transaction.get(alice)
    transaction.set(alice, {'balance': 0})

    with pytest.raises(doctx.SequencingError):
        transaction.get(alice)

    # The failed read must not disturb the writes already buffered.

    transaction.commit()
    assert database.fields_of('accounts/alice') == {'balance': 0}


def test_rejected_write_keeps_reading(client, database):

    alice = client.doc('accounts/alice')

    transaction = client.transaction()
    transaction.begin()

    with pytest.raises(doctx.ArgumentError):
        transaction.create(alice, 'not a mapping')

    with pytest.raises(doctx.ArgumentError):
        transaction.update(alice, 'count')

    assert transaction.phase is doctx.Phase.READING
    transaction.get(alice)


def test_update_requires_fields(client):

    transaction = client.transaction()
    transaction.begin()

    with pytest.raises(doctx.ArgumentError):
        transaction.update(client.doc('accounts/alice'))

    with pytest.raises(doctx.ArgumentError):
        transaction.update()

    assert transaction.phase is doctx.Phase.READING


def test_get_all_order(client, database):

    database.put('accounts/alice', {'balance': 100})
    database.put('accounts/carol', {'balance': 300})

    alice = client.doc('accounts/alice')
    bob = client.doc('accounts/bob')
    carol = client.doc('accounts/carol')

    transaction = client.transaction()
    transaction.begin()

    snapshots = transaction.get_all(carol, bob, alice, carol)

    assert [snapshot.reference for snapshot in snapshots] == [carol, bob, alice, carol]
    assert [snapshot.exists for snapshot in snapshots] == [True, False, True, True]
    assert snapshots[0].get('balance') == 300
    assert snapshots[2].get('balance') == 100
    assert snapshots[1].to_dict() is None

    # One round trip, no duplicate names on the wire.

    calls = database.calls('BATCH_GET')
    assert len(calls) == 1
    assert calls[0].value['documents'] == [carol.full_name, bob.full_name, alice.full_name]
    assert calls[0].value['transaction'] == transaction.transaction_id


def test_get_list(client, database):

    database.put('accounts/alice', {'balance': 100})
    alice = client.doc('accounts/alice')
    bob = client.doc('accounts/bob')

    transaction = client.transaction()
    transaction.begin()

    listed = transaction.get_list([bob, alice])
    assert [snapshot.id for snapshot in listed] == ['bob', 'alice']

    assert transaction.get_list(()) == []


def test_get_matches_get_all(client, database):

    database.put('accounts/alice', {'balance': 100, 'owner': {'name': 'Alice'}})
    alice = client.doc('accounts/alice')

    transaction = client.transaction()
    transaction.begin()

    single = transaction.get(alice)
    multiple = transaction.get_all(alice)

    assert single == multiple[0]
    assert single.get('owner.name') == 'Alice'


def test_bad_references(client):

    transaction = client.transaction()
    transaction.begin()

    with pytest.raises(doctx.ArgumentError) as error:
        transaction.get_all(client.doc('accounts/alice'), 'accounts/bob')

    assert 'element 1' in str(error.value)

    with pytest.raises(doctx.ArgumentError):
        transaction.get('accounts/bob')

    with pytest.raises(doctx.ArgumentError):
        transaction.get(None)


def test_read_before_begin(client, database):

    database.put('accounts/alice', {'balance': 100})
    alice = client.doc('accounts/alice')

    transaction = client.transaction()

    snapshot = transaction.get(alice)
    assert snapshot.get('balance') == 100

    calls = database.calls('BATCH_GET')
    assert 'transaction' not in calls[0].value


def test_query(client, database):

    database.put('accounts/alice', {'balance': 100})
    database.put('accounts/bob', {'balance': 20})
    database.put('accounts/carol', {'balance': 300})
    database.put('ledger/one', {'balance': 1000})

    query = client.collection('accounts').where('balance', '>=', 50).order_by('balance', 'DESCENDING')

    transaction = client.transaction()

    with pytest.raises(doctx.SequencingError):
        transaction.get(query)

    assert database.calls('RUN_QUERY') == []

    transaction.begin()
    results = transaction.get(query)

    assert isinstance(results, doctx.QuerySnapshot)
    assert [snapshot.id for snapshot in results] == ['carol', 'alice']
    assert results.docs[0].reference == client.doc('accounts/carol')

    calls = database.calls('RUN_QUERY')
    assert calls[0].value['transaction'] == transaction.transaction_id
    assert calls[0].tag == transaction.request_tag


def test_begin(client, database):

    transaction = client.transaction()
    assert transaction.transaction_id is None
    assert transaction.is_retry == False

    transaction.begin()

    assert transaction.transaction_id == 'txn-1'

    begin = database.calls('BEGIN')[0]
    assert begin.tag == transaction.request_tag
    assert begin.value == {'database': client.formatted_name}

    with pytest.raises(doctx.SequencingError):
        transaction.begin()


def test_begin_retry(client, database):

    first = client.transaction()
    first.begin()

    context = first.retry_context()
    assert context == doctx.RetryContext(first.request_tag, 'txn-1')

    second = client.transaction(context)
    assert second.is_retry
    assert second.request_tag == first.request_tag

    second.begin()

    begin = database.calls('BEGIN')[1]
    assert begin.tag == first.request_tag
    assert begin.value['options'] == {'readWrite': {'retryTransaction': 'txn-1'}}
    assert database.transactions['txn-2']['retrying'] == 'txn-1'


def test_retry_starts_empty(client, database):

    first = client.transaction()
    first.begin()
    first.create(client.doc('accounts/alice'), {'balance': 1})

    second = client.transaction(first.retry_context())
    second.begin()

    assert second.phase is doctx.Phase.READING
    second.commit()

    commit = database.calls('COMMIT')[0]
    assert commit.value['writes'] == []
    assert commit.value['transaction'] == second.transaction_id


def test_begin_failure(client, database):

    database.fail_next('BEGIN', 'PERMISSION_DENIED')

    transaction = client.transaction()

    with pytest.raises(doctx.BeginError) as error:
        transaction.begin()

    assert error.value.code == 'PERMISSION_DENIED'
    assert transaction.transaction_id is None
    assert len(database.calls('BEGIN')) == 1


def test_commit_writes_in_order(client, database):

    database.put('accounts/alice', {'balance': 100})
    database.put('accounts/bob', {'balance': 20})

    alice = client.doc('accounts/alice')
    bob = client.doc('accounts/bob')
    carol = client.doc('accounts/carol')
    dave = client.doc('accounts/dave')

    transaction = client.transaction()
    transaction.begin()
    transaction.get_all(alice, bob)

    transaction.create(carol, {'balance': 5})
    transaction.set(dave, {'balance': 6})
    transaction.update(alice, 'balance', 95)
    transaction.delete(bob)

    results = transaction.commit()
    assert len(results) == 4

    commits = database.calls('COMMIT')
    assert len(commits) == 1

    commit = commits[0]
    assert commit.tag == transaction.request_tag
    assert commit.value['transaction'] == transaction.transaction_id

    writes = commit.value['writes']
    assert writes[0]['update']['name'] == carol.full_name
    assert writes[0]['currentDocument'] == {'exists': False}
    assert writes[1]['update']['name'] == dave.full_name
    assert 'currentDocument' not in writes[1]
    assert writes[2]['updateMask'] == {'fieldPaths': ['balance']}
    assert writes[3] == {'delete': bob.full_name}

    assert database.fields_of('accounts/alice') == {'balance': 95}
    assert database.fields_of('accounts/bob') is None
    assert database.fields_of('accounts/carol') == {'balance': 5}
    assert database.fields_of('accounts/dave') == {'balance': 6}


def test_commit_conflict(client, database):

    database.put('accounts/alice', {'balance': 100})
    alice = client.doc('accounts/alice')

    transaction = client.transaction()
    transaction.begin()
    transaction.get(alice)

    database.put('accounts/alice', {'balance': 50})
    transaction.update(alice, {'balance': 90})

    with pytest.raises(doctx.CommitError) as error:
        transaction.commit()

    assert error.value.conflict
    assert error.value.retryable
    assert database.fields_of('accounts/alice') == {'balance': 50}


def test_failed_commit_then_rollback(client, database):

    alice = client.doc('accounts/alice')

    transaction = client.transaction()
    transaction.begin()
    transaction.update(alice, {'balance': 90})

    with pytest.raises(doctx.CommitError) as error:
        transaction.commit()

    assert error.value.code == 'FAILED_PRECONDITION'
    assert error.value.retryable == False

    transaction.rollback()
    assert database.calls('ROLLBACK')[0].value['transaction'] == transaction.transaction_id


def test_rollback(client, database):

    alice = client.doc('accounts/alice')

    transaction = client.transaction()
    transaction.begin()
    transaction.create(alice, {'balance': 1})
    transaction.rollback()

    assert database.calls('COMMIT') == []
    assert database.fields_of('accounts/alice') is None

    rollback = database.calls('ROLLBACK')[0]
    assert rollback.tag == transaction.request_tag
    assert rollback.value['transaction'] == 'txn-1'


def test_rollback_failure(client, database):

    database.fail_next('ROLLBACK', 'INTERNAL')

    transaction = client.transaction()
    transaction.begin()

    with pytest.raises(doctx.RollbackError) as error:
        transaction.rollback()

    assert error.value.code == 'INTERNAL'


def test_lifecycle_before_begin(client, database):

    transaction = client.transaction()
    transaction.create(client.doc('accounts/alice'), {'balance': 1})

    with pytest.raises(doctx.SequencingError):
        transaction.commit()

    with pytest.raises(doctx.SequencingError):
        transaction.rollback()

    assert database.requests == []


def test_finished(client):

    alice = client.doc('accounts/alice')

    committed = client.transaction()
    committed.begin()
    committed.create(alice, {'balance': 1})
    committed.commit()

    rolled_back = client.transaction()
    rolled_back.begin()
    rolled_back.rollback()

    for transaction in (committed, rolled_back):
        with pytest.raises(doctx.SequencingError):
            transaction.commit()

        with pytest.raises(doctx.SequencingError):
            transaction.rollback()

        with pytest.raises(doctx.SequencingError):
            transaction.begin()

        with pytest.raises(doctx.SequencingError):
            transaction.delete(alice)

    with pytest.raises(doctx.SequencingError):
        rolled_back.get(alice)


def test_request_tags(client, database):

    database.put('accounts/alice', {'balance': 100})
    alice = client.doc('accounts/alice')

    transaction = client.transaction()
    transaction.begin()
    transaction.get(alice)
    transaction.update(alice, {'balance': 1})
    transaction.commit()

    other = client.transaction()
    assert other.request_tag != transaction.request_tag

    tags = set(recorded.tag for recorded in database.requests)
    assert tags == set((transaction.request_tag,))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
