import doctx
import pytest
import unitserver

from doctx.write_batch import _leaf_paths, _nest


def test_create(client, database):

    alice = client.doc('accounts/alice')
    data = {'balance': 1, 'owner': {'name': 'Alice'}}

    batch = client.batch()
    assert batch.is_empty

    assert batch.create(alice, data) is batch
    assert len(batch) == 1

    # The batch holds its own copy of the data.

    data['balance'] = 2

    write = batch.writes[0]
    assert write['update'] == {'name': alice.full_name, 'fields': {'balance': 1, 'owner': {'name': 'Alice'}}}
    assert write['currentDocument'] == {'exists': False}

    results = batch.commit()
    assert len(results) == 1
    assert isinstance(results[0], doctx.WriteResult)
    assert results[0].update_time is not None

    assert database.fields_of('accounts/alice') == {'balance': 1, 'owner': {'name': 'Alice'}}

    commit = database.calls('COMMIT')[0]
    assert 'transaction' not in commit.value


def test_create_existing(client, database):

    database.put('accounts/alice', {'balance': 1})

    batch = client.batch()
    batch.create(client.doc('accounts/alice'), {'balance': 2})

    with pytest.raises(doctx.CommitError) as error:
        batch.commit()

    assert error.value.code == 'FAILED_PRECONDITION'
    assert error.value.conflict == False
    assert database.fields_of('accounts/alice') == {'balance': 1}


def test_set(client, database):

    database.put('accounts/alice', {'balance': 1, 'owner': {'name': 'Alice', 'since': 2020}})
    alice = client.doc('accounts/alice')

    batch = client.batch()
    batch.set(alice, {'owner': {'name': 'Alicia'}})

    write = batch.writes[0]
    assert 'updateMask' not in write
    assert 'currentDocument' not in write

    batch.commit()
    assert database.fields_of('accounts/alice') == {'owner': {'name': 'Alicia'}}


def test_set_merge(client, database):

    database.put('accounts/alice', {'balance': 1, 'owner': {'name': 'Alice', 'since': 2020}})
    alice = client.doc('accounts/alice')

    batch = client.batch()
    batch.set(alice, {'owner': {'name': 'Alicia'}, 'tier': 'gold'}, merge=True)

    write = batch.writes[0]
    assert write['updateMask'] == {'fieldPaths': ['owner.name', 'tier']}

    batch.commit()

    expected = {'balance': 1, 'owner': {'name': 'Alicia', 'since': 2020}, 'tier': 'gold'}
    assert database.fields_of('accounts/alice') == expected


def test_set_merge_fields(client, database):

    database.put('accounts/alice', {'balance': 1, 'owner': {'name': 'Alice', 'since': 2020}})
    alice = client.doc('accounts/alice')

    batch = client.batch()
    batch.set(alice, {'balance': 50, 'owner': {'name': 'Alicia', 'since': 2021}}, merge_fields=['owner.since'])

    write = batch.writes[0]
    assert write['update']['fields'] == {'owner': {'since': 2021}}
    assert write['updateMask'] == {'fieldPaths': ['owner.since']}

    batch.commit()

    expected = {'balance': 1, 'owner': {'name': 'Alice', 'since': 2021}}
    assert database.fields_of('accounts/alice') == expected


def test_set_merge_errors(client):

    alice = client.doc('accounts/alice')
    batch = client.batch()

    with pytest.raises(doctx.ArgumentError):
        batch.set(alice, {'balance': 1}, merge=True, merge_fields=['balance'])

    with pytest.raises(doctx.ArgumentError):
        batch.set(alice, {'balance': 1}, merge_fields=['owner'])

    with pytest.raises(doctx.ArgumentError):
        batch.set(alice, {'balance': 1}, merge_fields=['balance', 'balance'])

    with pytest.raises(doctx.ArgumentError):
        batch.set(alice, ['balance', 1])

    with pytest.raises(doctx.ArgumentError):
        batch.set(alice, {'': 1})

    with pytest.raises(doctx.ArgumentError):
        batch.set('accounts/alice', {'balance': 1})

    assert batch.is_empty


def test_update(client, database):

    database.put('accounts/alice', {'balance': 1, 'owner': {'name': 'Alice', 'since': 2020}})
    alice = client.doc('accounts/alice')

    batch = client.batch()
    batch.update(alice, {'balance': 2, 'owner.name': 'Alicia'})
    batch.update(alice, 'tier', 'gold', 'owner.since', 2019)

    first, second = batch.writes

    assert first['update']['fields'] == {'balance': 2, 'owner': {'name': 'Alicia'}}
    assert first['updateMask'] == {'fieldPaths': ['balance', 'owner.name']}
    assert first['currentDocument'] == {'exists': True}

    assert second['update']['fields'] == {'tier': 'gold', 'owner': {'since': 2019}}
    assert second['updateMask'] == {'fieldPaths': ['tier', 'owner.since']}

    batch.commit()

    expected = {'balance': 2, 'owner': {'name': 'Alicia', 'since': 2019}, 'tier': 'gold'}
    assert database.fields_of('accounts/alice') == expected


def test_update_errors(client):

    alice = client.doc('accounts/alice')
    batch = client.batch()

    with pytest.raises(doctx.ArgumentError):
        batch.update(alice)

    with pytest.raises(doctx.ArgumentError):
        batch.update()

    with pytest.raises(doctx.ArgumentError):
        batch.update(alice, {})

    with pytest.raises(doctx.ArgumentError):
        batch.update(alice, 'balance', 1, 'tier')

    with pytest.raises(doctx.ArgumentError):
        batch.update(alice, 'owner', {}, 'owner.name', 'Alice')

    with pytest.raises(doctx.ArgumentError):
        batch.update(alice, 'balance', 1, 'balance', 2)

    with pytest.raises(doctx.ArgumentError):
        batch.update(alice, {'owner..name': 'Alice'})

    with pytest.raises(doctx.ArgumentError):
        batch.update(alice, {'balance': 1}, precondition={'exists': True})

    assert batch.is_empty


def test_update_missing(client, database):

    batch = client.batch()
    batch.update(client.doc('accounts/alice'), {'balance': 1})

    with pytest.raises(doctx.CommitError) as error:
        batch.commit()

    assert error.value.code == 'FAILED_PRECONDITION'


def test_preconditions(client, database):

    database.put('accounts/alice', {'balance': 1})
    alice = client.doc('accounts/alice')
    update_time = alice.get().update_time

    assert doctx.Precondition(exists=True).to_wire() == {'exists': True}
    assert doctx.Precondition(last_update_time=update_time).to_wire() == {'updateTime': update_time}
    assert doctx.Precondition().is_empty

    with pytest.raises(doctx.ArgumentError):
        doctx.Precondition(exists=True, last_update_time=update_time)

    with pytest.raises(doctx.ArgumentError):
        doctx.Precondition(exists='yes')

    current = doctx.Precondition(last_update_time=update_time)

    batch = client.batch()
    batch.update(alice, {'balance': 2}, precondition=current)
    batch.commit()

    assert database.fields_of('accounts/alice') == {'balance': 2}

    # The document has changed since; the same precondition is now stale.

    batch = client.batch()
    batch.update(alice, {'balance': 3}, precondition=current)

    with pytest.raises(doctx.CommitError):
        batch.commit()

    assert database.fields_of('accounts/alice') == {'balance': 2}


def test_delete(client, database):

    database.put('accounts/alice', {'balance': 1})

    alice = client.doc('accounts/alice')
    bob = client.doc('accounts/bob')

    batch = client.batch()
    batch.delete(alice)
    batch.delete(bob)

    assert batch.writes == [{'delete': alice.full_name}, {'delete': bob.full_name}]

    results = batch.commit()
    assert len(results) == 2
    assert database.fields_of('accounts/alice') is None

    batch = client.batch()
    batch.delete(bob, doctx.Precondition(exists=True))
    assert batch.writes[0]['currentDocument'] == {'exists': True}

    with pytest.raises(doctx.CommitError):
        batch.commit()


def test_committed(client):

    alice = client.doc('accounts/alice')

    batch = client.batch()
    batch.create(alice, {'balance': 1})
    batch.commit()

    with pytest.raises(doctx.SequencingError):
        batch.commit()

    with pytest.raises(doctx.SequencingError):
        batch.delete(alice)

    assert len(batch) == 1


def test_atomic(client, database):

    database.put('accounts/alice', {'balance': 1})

    batch = client.batch()
    batch.set(client.doc('accounts/bob'), {'balance': 2})
    batch.create(client.doc('accounts/alice'), {'balance': 3})

    with pytest.raises(doctx.CommitError):
        batch.commit()

    assert database.fields_of('accounts/bob') is None


def test_transport_failure(client, database, local_transport):

    local_transport.drop = 1

    batch = client.batch()
    batch.create(client.doc('accounts/alice'), {'balance': 1})

    with pytest.raises(doctx.CommitError) as error:
        batch.commit()

    assert error.value.code == 'UNAVAILABLE'
    assert error.value.retryable
    assert isinstance(error.value.__cause__, doctx.transport.TransportTimeout)

    # A commit is never resent automatically.

    assert database.calls('COMMIT') == []



def test_lost_reply(local_transport, database):

    configuration = unitserver.unit_configuration(timeout=0.05)
    client = doctx.Client('unittest', local_transport, configuration)
    local_transport.lose = 1

    batch = client.batch()
    batch.create(client.doc('accounts/alice'), {'balance': 1})

    with pytest.raises(doctx.CommitError) as error:
        batch.commit()

    assert error.value.code == 'DEADLINE_EXCEEDED'
    assert error.value.retryable == False
    assert isinstance(error.value.__cause__, doctx.transport.TransportResponseTimeout)

    # The server applied it; only the reply went missing.

    assert len(database.calls('COMMIT')) == 1
    assert database.fields_of('accounts/alice') == {'balance': 1}


def test_helpers():

    assert _leaf_paths({'a': 1, 'b': {'c': 2, 'd': {}}}) == ['a', 'b.c', 'b.d']
    assert _nest([('a', 1), ('b.c', 2), ('b.d', 3)]) == {'a': 1, 'b': {'c': 2, 'd': 3}}


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
