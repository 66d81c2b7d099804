"""
Shared sample contracts for the test suite
"""

import pytest

from securechain.parser import ContractParser

BANK_CONTRACT = """pragma solidity 0.8.19;

contract Bank {
    mapping(address => uint256) public balances;

    function deposit() external payable {
        balances[msg.sender] += msg.value;
    }

    function withdraw(uint256 amount) external {
        require(balances[msg.sender] >= amount, "insufficient");
        (bool ok, ) = msg.sender.call{value: amount}("");
        require(ok, "transfer failed");
        balances[msg.sender] -= amount;
    }
}
"""

MOVE_MODULE = """module 0x1::coin_store {
    struct Balance has key { value: u64 }

    public fun withdraw(addr: address, amount: u64): u64 acquires Balance {
        let balance = borrow_global_mut<Balance>(addr);
        balance.value = balance.value - amount;
        amount
    }

    public fun remove(addr: address): u64 {
        let Balance { value } = move_from<Balance>(addr);
        value
    }
}
"""

CAIRO_CONTRACT = """#[starknet::contract]
mod counter {
    #[storage]
    struct Storage {
        count: felt252,
    }

    #[external(v0)]
    fn increment(ref self: ContractState, amount: felt252) {
        let current = self.count.read();
        self.count.write(current + amount);
    }
}
"""

INK_CONTRACT = """#![cfg_attr(not(feature = "std"), no_std, no_main)]

#[ink::contract]
mod flipper {
    #[ink(storage)]
    pub struct Flipper {
        value: bool,
        total: u128,
    }

    impl Flipper {
        #[ink(constructor)]
        pub fn new(init_value: bool) -> Self {
            Self { value: init_value, total: 0 }
        }

        #[ink(message)]
        pub fn flip(&mut self) {
            self.value = !self.value;
            self.total += 1;
        }

        #[ink(message)]
        pub fn get(&self) -> bool {
            self.value
        }
    }
}
"""


@pytest.fixture
def parser():
    return ContractParser()


@pytest.fixture
def bank_source():
    return BANK_CONTRACT


@pytest.fixture
def bank(parser):
    return parser.parse(BANK_CONTRACT, "Bank", file_path="contracts/Bank.sol")


@pytest.fixture
def move_module(parser):
    return parser.parse(MOVE_MODULE, "coin_store", file_path="sources/coin_store.move")


@pytest.fixture
def cairo_contract(parser):
    return parser.parse(CAIRO_CONTRACT, "counter", file_path="src/counter.cairo")


@pytest.fixture
def ink_contract(parser):
    return parser.parse(INK_CONTRACT, "flipper", file_path="lib.rs")
