import json
from fastapi.testclient import TestClient
from faucet.accounts import full_account_id, generate_key_pair
from faucet.config import Settings
from faucet.main import create_app
from faucet.pow import solve, verify


def main():
    settings = Settings(account_id='alice', account_suffix='.alice', min_difficulty=16, pool_balance=10**24)
    app = create_app(settings)
    client = TestClient(app)
    host = app.state.host

    account_id = full_account_id('demo', settings.account_suffix)
    _private_key, public_key = generate_key_pair()
    nonce = solve(account_id.encode(), public_key, settings.min_difficulty)
    assert verify(account_id.encode(), public_key, nonce, settings.min_difficulty)
    print('NONCE:', nonce)

    resp = client.post('/create_account', json={
        'account_id': account_id,
        'public_key': public_key.hex(),
        'nonce': nonce,
    })
    print('CREATE_ACCOUNT status:', resp.status_code)
    data = resp.json()
    print('CREATE_ACCOUNT json:', json.dumps(data, indent=2))

    outcome = client.get(f"/requests/{data['txid']}")
    print('JOURNAL json:', json.dumps(outcome.json(), indent=2))
    print('NEW ACCOUNT balance:', host.ledger.get_balance(account_id))
    print('POOL balance:', host.ledger.get_balance(settings.account_id))

    replay = client.post('/create_account', json={
        'account_id': account_id,
        'public_key': public_key.hex(),
        'nonce': nonce,
    })
    print('REPLAY status:', replay.status_code, replay.json())
    print('GRANTED:', client.get('/granted_count').json())

if __name__ == '__main__':
    main()
