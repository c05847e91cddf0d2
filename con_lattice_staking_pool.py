I = importlib

projects = Hash() # {"name", "start_timestamp", "end_timestamp", "total_amount_staked", "number_of_pools", "disabled"}
staking_pool_info = Hash() # [project_id, pool_id] -> {"max_staking_amount_per_user", "total_amount_staked"}
user_stakes = Hash() # [project_id, pool_id, user] -> {"amount", "withdrawn"}
project_count = Variable()
metadata = Hash()

# Held while control is handed to the token contract
busy = Variable(default_value=False)

EPOCH = datetime.datetime(year=1970, month=1, day=1)

# Standard XSC001 (Fungible Token) interface
token_interface = [
    I.Func('transfer_from', args=('amount', 'to', 'main_account')),
    I.Func('transfer', args=('amount', 'to')),
    I.Func('balance_of', args=('address',)),
]

# Events
ProjectAdded = LogEvent(
    event="ProjectAdded",
    params={
        "project_id": {'type': int},
        "name": {'type': str, 'idx': True},
        "start_timestamp": {'type': int},
        "end_timestamp": {'type': int}
    })

PoolAdded = LogEvent(
    event="PoolAdded",
    params={
        "project_id": {'type': int},
        "pool_id": {'type': int},
        "max_staking_amount_per_user": {'type': int}
    })

ProjectDisabled = LogEvent(
    event="ProjectDisabled",
    params={
        "project_id": {'type': int}
    })

Deposit = LogEvent(
    event="Deposit",
    params={
        "user": {'type': str, 'idx': True},
        "project_id": {'type': int},
        "pool_id": {'type': int},
        "amount": {'type': int}
    })

Withdraw = LogEvent(
    event="Withdraw",
    params={
        "user": {'type': str, 'idx': True},
        "project_id": {'type': int},
        "pool_id": {'type': int},
        "amount": {'type': int}
    })

@construct
def seed():
    metadata['operator'] = ctx.caller
    metadata['staking_token'] = 'con_lattice_token'
    metadata['name_length'] = 64
    project_count.set(0)
    busy.set(False)

@export
def change_metadata(key: str, value: Any):
    assert not busy.get(), "changeMetadata: Staking contract is busy"
    assert ctx.caller == metadata['operator'], 'changeMetadata: Only operator can set metadata'

    if key == 'staking_token':
        assert project_count.get() == 0, 'changeMetadata: Staking token is locked once projects exist'
        token_contract = I.import_module(value)
        assert I.enforce_interface(token_contract, token_interface), \
            'changeMetadata: Staking token is not XSC001-compliant'

    metadata[key] = value

def block_timestamp():
    # Injected block time as Unix epoch seconds
    return int((now - EPOCH).seconds)

def assert_operator(operation: str):
    assert ctx.caller == metadata['operator'], f'{operation}: Only operator can manage projects'

def assert_valid_project(project_id: int, operation: str):
    assert project_id >= 0 and project_id < project_count.get(), f'{operation}: Invalid project ID'
    return projects[project_id]

def assert_valid_pool(project_id: int, pool_id: int, operation: str):
    project = assert_valid_project(project_id, operation)
    assert pool_id >= 0 and pool_id < project["number_of_pools"], f'{operation}: Invalid pool ID'
    return project, staking_pool_info[project_id, pool_id]

def get_stake_record(project_id: int, pool_id: int, user: str):
    stake = user_stakes[project_id, pool_id, user]
    if stake is None:
        stake = {"amount": 0, "withdrawn": False}
    return stake

# --- Project registry ---
@export
def add_project(name: str, start_timestamp: int, end_timestamp: int):
    assert_operator('addProject')
    assert len(name) > 0 and len(name) <= metadata['name_length'], \
        f"addProject: Invalid name, should be 1-{metadata['name_length']} characters"
    assert start_timestamp < end_timestamp, 'addProject: Start must be before end'

    project_id = project_count.get()
    projects[project_id] = {
        "name": name,
        "start_timestamp": start_timestamp,
        "end_timestamp": end_timestamp,
        "total_amount_staked": 0,
        "number_of_pools": 0,
        "disabled": False
    }
    project_count.set(project_id + 1)

    ProjectAdded({
        "project_id": project_id,
        "name": name,
        "start_timestamp": start_timestamp,
        "end_timestamp": end_timestamp
    })
    return project_id

@export
def disable_project(project_id: int):
    project = assert_valid_project(project_id, 'disableProject')
    assert_operator('disableProject')
    assert not project["disabled"], 'disableProject: Project is disabled'

    project["disabled"] = True
    projects[project_id] = project

    ProjectDisabled({"project_id": project_id})

# --- Pool registry ---
@export
def add_staking_pool(project_id: int, max_staking_amount_per_user: int):
    project = assert_valid_project(project_id, 'addStakingPool')
    assert_operator('addStakingPool')
    assert not project["disabled"], 'addStakingPool: Project is disabled'
    assert max_staking_amount_per_user >= 0, 'addStakingPool: Max staking amount cannot be negative'

    pool_id = project["number_of_pools"]
    staking_pool_info[project_id, pool_id] = {
        "max_staking_amount_per_user": max_staking_amount_per_user,
        "total_amount_staked": 0
    }
    project["number_of_pools"] = pool_id + 1
    projects[project_id] = project

    PoolAdded({
        "project_id": project_id,
        "pool_id": pool_id,
        "max_staking_amount_per_user": max_staking_amount_per_user
    })
    return pool_id

# --- Deposits and withdrawals ---
@export
def deposit(project_id: int, pool_id: int, amount: int):
    assert not busy.get(), 'deposit: Staking contract is busy'
    busy.set(True)

    project, pool = assert_valid_pool(project_id, pool_id, 'deposit')
    assert amount > 0, 'deposit: Amount must be positive'
    assert not project["disabled"], 'deposit: Project is disabled'

    timestamp = block_timestamp()
    assert timestamp >= project["start_timestamp"] and timestamp <= project["end_timestamp"], \
        'deposit: Staking window is closed'

    stake = get_stake_record(project_id, pool_id, ctx.caller)
    assert not stake["withdrawn"], 'deposit: Funds already withdrawn'

    cap = pool["max_staking_amount_per_user"]
    if cap > 0:
        assert stake["amount"] + amount <= cap, 'deposit: Exceeds max staking amount per user'

    # Token contract raises on insufficient allowance or balance
    token_contract = I.import_module(metadata['staking_token'])
    token_contract.transfer_from(amount=amount, to=ctx.this, main_account=ctx.caller)

    stake["amount"] += amount
    pool["total_amount_staked"] += amount
    project["total_amount_staked"] += amount
    user_stakes[project_id, pool_id, ctx.caller] = stake
    staking_pool_info[project_id, pool_id] = pool
    projects[project_id] = project

    Deposit({
        "user": ctx.caller,
        "project_id": project_id,
        "pool_id": pool_id,
        "amount": amount
    })

    busy.set(False)

@export
def withdraw(project_id: int, pool_id: int):
    assert not busy.get(), 'withdraw: Staking contract is busy'
    busy.set(True)

    project, pool = assert_valid_pool(project_id, pool_id, 'withdraw')
    stake = get_stake_record(project_id, pool_id, ctx.caller)
    assert not stake["withdrawn"], 'withdraw: Funds already withdrawn'
    assert stake["amount"] > 0, 'withdraw: Nothing staked'
    assert project["disabled"] or block_timestamp() > project["end_timestamp"], \
        'withdraw: Staking period is not over'

    amount = stake["amount"]

    # --- EFFECTS ---
    stake["amount"] = 0
    stake["withdrawn"] = True
    pool["total_amount_staked"] -= amount
    project["total_amount_staked"] -= amount
    user_stakes[project_id, pool_id, ctx.caller] = stake
    staking_pool_info[project_id, pool_id] = pool
    projects[project_id] = project

    # --- INTERACTION ---
    token_contract = I.import_module(metadata['staking_token'])
    token_contract.transfer(amount=amount, to=ctx.caller)

    Withdraw({
        "user": ctx.caller,
        "project_id": project_id,
        "pool_id": pool_id,
        "amount": amount
    })

    busy.set(False)

# --- Views ---
@export
def get_total_amount_staked_in_project(project_id: int):
    project = assert_valid_project(project_id, 'getTotalAmountStakedInProject')
    return project["total_amount_staked"]

@export
def number_of_projects():
    return project_count.get()

@export
def number_of_pools(project_id: int):
    project = assert_valid_project(project_id, 'numberOfPools')
    return project["number_of_pools"]

@export
def get_project(project_id: int):
    return assert_valid_project(project_id, 'projects')

@export
def get_staking_pool_info(project_id: int, pool_id: int):
    project, pool = assert_valid_pool(project_id, pool_id, 'stakingPoolInfo')
    return pool

@export
def get_user_stake(project_id: int, pool_id: int, user: str):
    assert_valid_pool(project_id, pool_id, 'userStake')
    return get_stake_record(project_id, pool_id, user)

@export
def user_staked_amount(project_id: int, pool_id: int, user: str):
    assert_valid_pool(project_id, pool_id, 'userStakedAmount')
    return get_stake_record(project_id, pool_id, user)["amount"]

@export
def did_user_withdraw_funds(project_id: int, pool_id: int, user: str):
    assert_valid_pool(project_id, pool_id, 'didUserWithdrawFunds')
    return get_stake_record(project_id, pool_id, user)["withdrawn"]
