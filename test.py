import unittest
from contracting.stdlib.bridge.time import Datetime, Timedelta
from contracting.client import ContractingClient
from pathlib import Path

# 2024-01-01 00:00:00 as Unix epoch seconds, matches self.base_time below
BASE_EPOCH = 1704067200
HOUR = 60 * 60
DAY = 24 * HOUR
LTX = 100_000_000 # 1 LTX in the smallest unit (8 decimals)


class TestLatticeStakingPool(unittest.TestCase):
    def setUp(self):
        self.client = ContractingClient()
        self.client.flush() # Ensures a clean state

        # Define user accounts
        self.operator = 'sys' # Submits contracts, manages projects
        self.alice = 'alice'
        self.bob = 'bob'

        self.staking_contract_name = "con_lattice_staking_pool"
        self.token_contract_name = "con_lattice_token"

        contracts_dir = Path(__file__).resolve().parent

        with open(contracts_dir / "con_lattice_token.py") as f:
            self.client.submit(f.read(), name=self.token_contract_name, signer=self.operator)
        with open(contracts_dir / "con_lattice_staking_pool.py") as f:
            self.client.submit(f.read(), name=self.staking_contract_name, signer=self.operator)

        self.staking = self.client.get_contract(self.staking_contract_name)
        self.ltx = self.client.get_contract(self.token_contract_name)

        # Base time for controlling "now" in tests
        self.base_time = Datetime(year=2024, month=1, day=1, hour=0, minute=0, second=0)

        # Project window opens in one hour and lasts seven days
        self.start_timestamp = BASE_EPOCH + HOUR
        self.end_timestamp = self.start_timestamp + 7 * DAY

        self.project_id = self.staking.add_project(
            name="project-a",
            start_timestamp=self.start_timestamp,
            end_timestamp=self.end_timestamp,
            signer=self.operator,
            environment={"now": self.base_time}
        )
        for i in range(3):
            self.staking.add_staking_pool(
                project_id=self.project_id,
                max_staking_amount_per_user=i * 4000 * LTX,
                signer=self.operator
            )

        # --- Token Distribution & Approvals ---
        self.ltx.transfer(amount=10000 * LTX, to=self.alice, signer=self.operator)
        self.ltx.approve(amount=8000 * LTX, to=self.staking_contract_name, signer=self.alice)

        print("Setup complete.")

    def tearDown(self):
        self.client.flush()

    def _at(self, epoch_seconds: int) -> Datetime:
        return self.base_time + Timedelta(seconds=epoch_seconds - BASE_EPOCH)

    def _make_deposit(self, pool_id: int, amount: int, signer: str, at: int = None):
        if at is None:
            at = BASE_EPOCH + 2 * HOUR
        self.staking.deposit(
            project_id=self.project_id,
            pool_id=pool_id,
            amount=amount,
            signer=signer,
            environment={"now": self._at(at)}
        )

    def test_returns_correct_amount(self):
        print("\n--- Test: Total Amount Staked In Project ---")
        self._make_deposit(pool_id=0, amount=3000 * LTX, signer=self.alice)

        total_amount_staked = self.staking.get_total_amount_staked_in_project(project_id=0)
        self.assertEqual(total_amount_staked, 3000 * LTX)

    def test_rejects_invalid_project_id(self):
        print("\n--- Test: Total Amount Staked Rejects Invalid Project ID ---")
        self._make_deposit(pool_id=0, amount=3000 * LTX, signer=self.alice)

        with self.assertRaisesRegex(AssertionError, "(?i)getTotalAmountStakedInProject: Invalid project ID"):
            self.staking.get_total_amount_staked_in_project(project_id=1)

        with self.assertRaisesRegex(AssertionError, "(?i)getTotalAmountStakedInProject: Invalid project ID"):
            self.staking.get_total_amount_staked_in_project(project_id=-1)

    def test_project_and_pools_created(self):
        print("\n--- Test: Project And Pools Created ---")
        self.assertEqual(self.project_id, 0)
        self.assertEqual(self.staking.number_of_projects(), 1)
        self.assertEqual(self.staking.number_of_pools(project_id=0), 3)

        project = self.staking.get_project(project_id=0)
        self.assertEqual(project['name'], "project-a")
        self.assertEqual(project['start_timestamp'], self.start_timestamp)
        self.assertEqual(project['end_timestamp'], self.end_timestamp)
        self.assertEqual(project['total_amount_staked'], 0)
        self.assertEqual(project['number_of_pools'], 3)
        self.assertFalse(project['disabled'])

        for pool_id in range(3):
            pool = self.staking.get_staking_pool_info(project_id=0, pool_id=pool_id)
            self.assertEqual(pool['max_staking_amount_per_user'], pool_id * 4000 * LTX)
            self.assertEqual(pool['total_amount_staked'], 0)

        # Raw state is readable too
        self.assertEqual(self.staking.projects[0]['name'], "project-a")
        self.assertEqual(self.staking.staking_pool_info[0, 2]['max_staking_amount_per_user'], 8000 * LTX)

        # A second project gets the next sequential id
        second_project_id = self.staking.add_project(
            name="project-b",
            start_timestamp=self.start_timestamp,
            end_timestamp=self.end_timestamp,
            signer=self.operator
        )
        self.assertEqual(second_project_id, 1)
        self.assertEqual(self.staking.number_of_projects(), 2)
        self.assertEqual(self.staking.number_of_pools(project_id=1), 0)

    def test_deposit_updates_user_pool_and_project_totals(self):
        print("\n--- Test: Deposit Updates All Totals ---")
        self._make_deposit(pool_id=0, amount=1000 * LTX, signer=self.alice)
        self._make_deposit(pool_id=0, amount=500 * LTX, signer=self.alice)
        self._make_deposit(pool_id=2, amount=2500 * LTX, signer=self.alice)

        self.assertEqual(self.staking.user_staked_amount(project_id=0, pool_id=0, user=self.alice), 1500 * LTX)
        self.assertEqual(self.staking.user_staked_amount(project_id=0, pool_id=2, user=self.alice), 2500 * LTX)
        self.assertEqual(self.staking.user_staked_amount(project_id=0, pool_id=1, user=self.alice), 0)

        pool_totals = [
            self.staking.get_staking_pool_info(project_id=0, pool_id=pool_id)['total_amount_staked']
            for pool_id in range(3)
        ]
        self.assertEqual(pool_totals, [1500 * LTX, 0, 2500 * LTX])
        self.assertEqual(self.staking.get_total_amount_staked_in_project(project_id=0), sum(pool_totals))

        # Tokens moved into the staking contract's custody
        self.assertEqual(self.ltx.balance_of(address=self.alice), 6000 * LTX)
        self.assertEqual(self.ltx.balance_of(address=self.staking_contract_name), 4000 * LTX)
        self.assertEqual(self.ltx.allowance(owner=self.alice, spender=self.staking_contract_name), 4000 * LTX)

        print(f"Project total after deposits: {self.staking.get_total_amount_staked_in_project(project_id=0)}")

    def test_deposit_window_is_inclusive(self):
        print("\n--- Test: Staking Window Boundaries ---")
        self._make_deposit(pool_id=0, amount=100 * LTX, signer=self.alice, at=self.start_timestamp)
        self._make_deposit(pool_id=0, amount=100 * LTX, signer=self.alice, at=self.end_timestamp)
        self.assertEqual(self.staking.get_total_amount_staked_in_project(project_id=0), 200 * LTX)

    def test_deposit_outside_window_rejected(self):
        print("\n--- Test: Deposit Outside Staking Window ---")
        with self.assertRaisesRegex(AssertionError, "deposit: Staking window is closed"):
            self._make_deposit(pool_id=0, amount=100 * LTX, signer=self.alice, at=self.start_timestamp - 1)

        with self.assertRaisesRegex(AssertionError, "deposit: Staking window is closed"):
            self._make_deposit(pool_id=0, amount=100 * LTX, signer=self.alice, at=self.end_timestamp + 1)

        self.assertEqual(self.staking.get_total_amount_staked_in_project(project_id=0), 0)
        self.assertEqual(self.staking.get_staking_pool_info(project_id=0, pool_id=0)['total_amount_staked'], 0)
        self.assertEqual(self.staking.user_staked_amount(project_id=0, pool_id=0, user=self.alice), 0)
        self.assertEqual(self.ltx.balance_of(address=self.alice), 10000 * LTX)

    def test_withdraw_after_staking_period(self):
        print("\n--- Test: Withdraw After Staking Period ---")
        self._make_deposit(pool_id=1, amount=3000 * LTX, signer=self.alice)
        self.assertFalse(self.staking.did_user_withdraw_funds(project_id=0, pool_id=1, user=self.alice))

        time_after_end = self._at(self.end_timestamp + 1)
        self.staking.withdraw(project_id=0, pool_id=1, signer=self.alice, environment={"now": time_after_end})

        self.assertTrue(self.staking.did_user_withdraw_funds(project_id=0, pool_id=1, user=self.alice))
        self.assertEqual(self.staking.user_staked_amount(project_id=0, pool_id=1, user=self.alice), 0)
        self.assertEqual(self.staking.get_staking_pool_info(project_id=0, pool_id=1)['total_amount_staked'], 0)
        self.assertEqual(self.staking.get_total_amount_staked_in_project(project_id=0), 0)

        # Exactly the staked amount came back
        self.assertEqual(self.ltx.balance_of(address=self.alice), 10000 * LTX)
        self.assertEqual(self.ltx.balance_of(address=self.staking_contract_name), 0)

        # Withdrawal is not repeatable
        with self.assertRaisesRegex(AssertionError, "withdraw: Funds already withdrawn"):
            self.staking.withdraw(project_id=0, pool_id=1, signer=self.alice, environment={"now": time_after_end})
        self.assertEqual(self.ltx.balance_of(address=self.alice), 10000 * LTX)

    def test_withdraw_leaves_other_stakes_untouched(self):
        print("\n--- Test: Withdraw Leaves Other Stakes Untouched ---")
        self.ltx.transfer(amount=5000 * LTX, to=self.bob, signer=self.operator)
        self.ltx.approve(amount=5000 * LTX, to=self.staking_contract_name, signer=self.bob)

        self._make_deposit(pool_id=0, amount=2000 * LTX, signer=self.alice)
        self._make_deposit(pool_id=2, amount=1000 * LTX, signer=self.alice)
        self._make_deposit(pool_id=0, amount=4000 * LTX, signer=self.bob)
        self.assertEqual(self.staking.get_total_amount_staked_in_project(project_id=0), 7000 * LTX)

        self.staking.withdraw(
            project_id=0, pool_id=0, signer=self.alice,
            environment={"now": self._at(self.end_timestamp + DAY)}
        )

        self.assertEqual(self.staking.get_staking_pool_info(project_id=0, pool_id=0)['total_amount_staked'], 4000 * LTX)
        self.assertEqual(self.staking.get_staking_pool_info(project_id=0, pool_id=2)['total_amount_staked'], 1000 * LTX)
        self.assertEqual(self.staking.get_total_amount_staked_in_project(project_id=0), 5000 * LTX)
        self.assertEqual(self.staking.user_staked_amount(project_id=0, pool_id=0, user=self.bob), 4000 * LTX)
        self.assertFalse(self.staking.did_user_withdraw_funds(project_id=0, pool_id=2, user=self.alice))
        self.assertEqual(self.ltx.balance_of(address=self.alice), 9000 * LTX)

if __name__ == '__main__':
    unittest.main()
