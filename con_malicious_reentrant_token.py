# con_malicious_reentrant_token.py
I = importlib

balances = Hash(default_value=0)
metadata = Hash()

re_entry_owner = Variable() # To control sensitive operations

# Re-entrancy specific state
re_entry_target_staking_name = Variable()
re_entry_project_id = Variable()
re_entry_pool_id = Variable()
re_entry_deposit_amount = Variable()
re_entry_on_transfer = Variable() # Re-enter withdraw() when the staking contract pays us back
re_entry_attempt_count = Variable()
re_entry_max_attempts = Variable() # To prevent infinite loops in complex scenarios

@construct
def seed():
    re_entry_attempt_count.set(0)
    re_entry_max_attempts.set(1) # Only re-enter once for this test
    re_entry_on_transfer.set(False)
    re_entry_owner.set(ctx.caller)
    metadata['total_supply'] = 0

def internal_approve(spender: str, amount_to_approve: int):
    # Owner of the allowance is this contract
    balances[ctx.this, spender] = amount_to_approve

@export
def configure_re_entrancy(staking_name: str, project_id: int, pool_id: int, amount: int, on_transfer: bool = False):
    assert ctx.caller == re_entry_owner.get(), "Only owner can configure re-entrancy."
    re_entry_target_staking_name.set(staking_name)
    re_entry_project_id.set(project_id)
    re_entry_pool_id.set(pool_id)
    re_entry_deposit_amount.set(amount)
    re_entry_on_transfer.set(on_transfer)
    re_entry_attempt_count.set(0)

    # The re-entrant deposit pulls this contract's own tokens
    if amount > 0 and staking_name:
        internal_approve(spender=staking_name, amount_to_approve=amount)

# Lets this contract act as a depositor (ctx.caller is this contract inside the staking contract)
@export
def execute_deposit(staking_name: str, project_id: int, pool_id: int, amount: int):
    assert ctx.caller == re_entry_owner.get(), "Only owner can execute deposit."
    internal_approve(spender=staking_name, amount_to_approve=amount)
    staking_contract = I.import_module(staking_name)
    staking_contract.deposit(project_id=project_id, pool_id=pool_id, amount=amount)

@export
def execute_withdraw(staking_name: str, project_id: int, pool_id: int):
    assert ctx.caller == re_entry_owner.get(), "Only owner can execute withdraw."
    staking_contract = I.import_module(staking_name)
    staking_contract.withdraw(project_id=project_id, pool_id=pool_id)

@export
def mint(amount: int, to: str):
    assert ctx.caller == re_entry_owner.get(), "Only owner can mint."
    assert amount > 0, "Mint amount must be positive"
    balances[to] += amount
    metadata['total_supply'] = metadata['total_supply'] + amount

@export
def transfer(amount: int, to: str):
    assert amount > 0, "Transfer amount must be positive"
    # sender is the staking contract when it pays out a withdrawal
    sender = ctx.caller
    assert balances[sender] >= amount, f"Insufficient balance for sender {sender}"

    balances[sender] -= amount
    balances[to] += amount

    # --- RE-ENTRANCY LOGIC FOR WITHDRAW ---
    current_attempts = re_entry_attempt_count.get()
    target_staking = re_entry_target_staking_name.get()

    if re_entry_on_transfer.get() and target_staking and current_attempts < re_entry_max_attempts.get():
        if sender == target_staking and to == ctx.this:
            re_entry_attempt_count.set(current_attempts + 1)
            staking_contract = I.import_module(target_staking)
            staking_contract.withdraw(project_id=re_entry_project_id.get(), pool_id=re_entry_pool_id.get())

    return True

@export
def approve(amount: int, to: str):
    assert amount >= 0, "Approve amount must be non-negative"
    balances[ctx.caller, to] = amount
    return True

@export
def transfer_from(amount: int, to: str, main_account: str):
    assert amount > 0, "Transfer amount must be positive"
    spender = ctx.caller # The staking contract in the scenario

    assert balances[main_account] >= amount, f"Insufficient balance for owner {main_account}"
    assert balances[main_account, spender] >= amount, \
        f"Insufficient allowance for spender {spender} from owner {main_account}"

    balances[main_account] -= amount
    balances[main_account, spender] -= amount
    balances[to] += amount

    # --- RE-ENTRANCY LOGIC FOR DEPOSIT ---
    current_attempts = re_entry_attempt_count.get()
    target_staking = re_entry_target_staking_name.get()
    re_deposit_amount = re_entry_deposit_amount.get()

    if not re_entry_on_transfer.get() and target_staking and re_deposit_amount and current_attempts < re_entry_max_attempts.get():
        re_entry_attempt_count.set(current_attempts + 1)
        staking_contract = I.import_module(target_staking)
        # ctx.caller for the re-entrant deposit is this contract
        staking_contract.deposit(
            project_id=re_entry_project_id.get(),
            pool_id=re_entry_pool_id.get(),
            amount=re_deposit_amount
        )

    return True

@export
def balance_of(address: str):
    return balances[address]

@export
def allowance(owner: str, spender: str):
    return balances[owner, spender]
