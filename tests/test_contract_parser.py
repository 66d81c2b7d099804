"""
Tests for the regex-based contract parser
"""

import unittest

from securechain.errors import ParseDegraded
from securechain.models import SourceUnit
from securechain.parser import ContractParser, mask_comments_and_strings, parse_parameters

# Sample contract for testing
VAULT_CONTRACT = """// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

import "./IERC20.sol";
import {Ownable} from '@openzeppelin/contracts/access/Ownable.sol';

contract Vault is Ownable, ReentrancyGuard {
    mapping(address => uint256) public balances;
    uint256 public constant MAX_DEPOSIT = 100 ether;
    address payable owner;
    IERC20 private immutable token;

    event Deposit(address indexed user, uint256 amount);

    modifier onlyPositive(uint256 amount) {
        require(amount > 0, "zero");
        _;
    }

    constructor(address _token) Ownable(msg.sender) {
        token = IERC20(_token);
    }

    function deposit(uint256 amount) external payable onlyPositive(amount) {
        balances[msg.sender] += amount;
        emit Deposit(msg.sender, amount);
    }

    function balanceOf(address user) public view returns (uint256 balance) {
        return balances[user];
    }

    function _internalHelper() {
    }
}
"""

COMMENTED_CONTRACT = """pragma solidity 0.8.20;

contract Quiet {
    // function commentedOut() public { }
    /* function blockCommented() external {
    } */
    string public banner = "function inString() public {";

    function real() public pure returns (uint256) {
        return 1;
    }
}
"""

INTERFACE_CONTRACT = """pragma solidity >=0.7.0 <0.9.0;

interface IToken {
    function totalSupply() external view returns (uint256);
    function transfer(address to, uint256 amount) external returns (bool);
}
"""

SPECIAL_FUNCTIONS = """pragma solidity 0.4.24;

contract Legacy {
    function() external payable {
    }

    function peek() public constant returns (uint256) {
        return 0;
    }
}

contract Modern {
    receive() external payable {}
    fallback() external {}
}
"""

UNTERMINATED_CONTRACT = """pragma solidity 0.8.0;

contract Broken {
    function ok() public {
        uint256 x = 1;
    }

    function cut() public {
        uint256 y = 2;
"""


class TestContractParser(unittest.TestCase):
    """Test cases for ContractParser"""

    def setUp(self):
        self.parser = ContractParser()
        self.vault = self.parser.parse(VAULT_CONTRACT, "Vault", file_path="contracts/Vault.sol")

    def test_directives(self):
        self.assertEqual(self.vault.license, "MIT")
        self.assertEqual(self.vault.pragma_directives, ("solidity ^0.8.0",))
        self.assertEqual(self.vault.compiler_version, "^0.8.0")
        self.assertEqual(
            self.vault.imports,
            ("./IERC20.sol", "@openzeppelin/contracts/access/Ownable.sol"),
        )
        self.assertEqual(self.vault.inheritance, ("Ownable", "ReentrancyGuard"))

    def test_functions_and_line_numbers(self):
        names = [func.name for func in self.vault.functions]
        self.assertEqual(names, ["constructor", "deposit", "balanceOf", "_internalHelper"])
        lines = [func.line_number for func in self.vault.functions]
        self.assertEqual(lines, [20, 24, 29, 33])

    def test_function_header(self):
        deposit = self.vault.function("deposit")
        self.assertEqual(deposit.visibility, "external")
        self.assertEqual(deposit.state_mutability, "payable")
        self.assertEqual(deposit.modifiers, ("onlyPositive",))
        self.assertEqual([(p.name, p.type_name) for p in deposit.parameters], [("amount", "uint256")])
        self.assertTrue(deposit.body.startswith("    function deposit"))
        self.assertTrue(deposit.body.rstrip().endswith("}"))
        self.assertIn("emit Deposit", deposit.body)

    def test_return_parameters(self):
        balance_of = self.vault.function("balanceOf")
        self.assertEqual(balance_of.state_mutability, "view")
        self.assertEqual([(p.name, p.type_name) for p in balance_of.return_parameters], [("balance", "uint256")])

    def test_defaults(self):
        helper = self.vault.function("_internalHelper")
        self.assertEqual(helper.visibility, "internal")
        self.assertEqual(helper.state_mutability, "none")
        self.assertEqual(helper.modifiers, ())

    def test_constructor(self):
        constructor = self.vault.function("constructor")
        self.assertTrue(constructor.is_constructor)
        self.assertEqual(constructor.modifiers, ("Ownable",))
        self.assertEqual(constructor.parameters[0].name, "_token")

    def test_state_variables(self):
        variables = {var.name: var for var in self.vault.state_variables}
        self.assertEqual(list(variables), ["balances", "MAX_DEPOSIT", "owner", "token"])

        self.assertEqual(variables["balances"].type_name, "mapping(address => uint256)")
        self.assertEqual(variables["balances"].visibility, "public")
        self.assertEqual(variables["balances"].line_number, 8)

        self.assertTrue(variables["MAX_DEPOSIT"].is_constant)
        self.assertEqual(variables["MAX_DEPOSIT"].initial_value, "100 ether")

        self.assertEqual(variables["owner"].type_name, "address payable")
        self.assertEqual(variables["owner"].visibility, "internal")

        self.assertTrue(variables["token"].is_immutable)
        self.assertEqual(variables["token"].visibility, "private")

    def test_modifiers_and_events(self):
        self.assertEqual(len(self.vault.modifiers), 1)
        modifier = self.vault.modifiers[0]
        self.assertEqual(modifier.name, "onlyPositive")
        self.assertEqual(modifier.line_number, 15)
        self.assertIn("_;", modifier.body)

        self.assertEqual(len(self.vault.events), 1)
        event = self.vault.events[0]
        self.assertEqual(event.name, "Deposit")
        self.assertEqual(event.line_number, 13)
        self.assertEqual(
            [(p.name, p.type_name, p.indexed) for p in event.parameters],
            [("user", "address", True), ("amount", "uint256", False)],
        )

    def test_metadata_and_name_pass_through(self):
        model = self.parser.parse(VAULT_CONTRACT, "Renamed", metadata={"source": "test"}, compiler_version="0.8.21")
        self.assertEqual(model.name, "Renamed")
        self.assertEqual(model.metadata, {"source": "test"})
        self.assertEqual(model.compiler_version, "0.8.21")
        self.assertEqual(model.source_code, VAULT_CONTRACT)

    def test_metadata_is_read_only(self):
        metadata = {"verified": "yes"}
        model = self.parser.parse(VAULT_CONTRACT, "Vault", metadata=metadata)

        with self.assertRaises(TypeError):
            model.metadata["verified"] = "no"
        metadata["verified"] = "no"
        self.assertEqual(model.metadata["verified"], "yes")
        self.assertEqual(model.model_dump()["metadata"], {"verified": "yes"})

        unit = SourceUnit(name="Vault", source_code=VAULT_CONTRACT, metadata={"source": "local"})
        with self.assertRaises(TypeError):
            unit.metadata["source"] = "remote"
        with self.assertRaises(TypeError):
            self.parser.parse_unit(unit).metadata["extra"] = "x"

    def test_comments_and_strings_ignored(self):
        model = self.parser.parse(COMMENTED_CONTRACT, "Quiet")
        self.assertEqual([func.name for func in model.functions], ["real"])
        self.assertEqual(model.functions[0].line_number, 9)
        self.assertEqual([var.name for var in model.state_variables], ["banner"])

    def test_interface_functions_have_empty_body(self):
        model = self.parser.parse(INTERFACE_CONTRACT, "IToken")
        self.assertEqual([func.name for func in model.functions], ["totalSupply", "transfer"])
        self.assertTrue(all(func.body == "" for func in model.functions))
        self.assertEqual(model.compiler_version, ">=0.7.0 <0.9.0")

    def test_special_functions(self):
        model = self.parser.parse(SPECIAL_FUNCTIONS, "Legacy")
        legacy = model.functions[0]
        self.assertEqual(legacy.name, "fallback")
        self.assertTrue(legacy.is_fallback)
        self.assertEqual(legacy.state_mutability, "payable")

        self.assertEqual(model.function("peek").state_mutability, "view")
        self.assertTrue(model.function("receive").is_receive)
        self.assertTrue(model.function("fallback").is_fallback)
        self.assertEqual(len(model.functions), 4)

    def test_unterminated_body_runs_to_end(self):
        with self.assertWarns(ParseDegraded):
            model = self.parser.parse(UNTERMINATED_CONTRACT, "Broken")
        self.assertEqual([func.name for func in model.functions], ["ok", "cut"])
        cut = model.function("cut")
        self.assertEqual(cut.line_number, 8)
        self.assertTrue(cut.body.rstrip().endswith("uint256 y = 2;"))

    def test_generated_functions(self):
        count = 12
        lines = ["pragma solidity 0.8.0;", "contract Many {"]
        expected = []
        for i in range(count):
            expected.append(len(lines) + 1)
            lines.extend([f"    function f{i}(uint256 a, uint256 b) public {{", "        a + b;", "    }"])
        lines.append("}")
        model = self.parser.parse("\n".join(lines), "Many")

        self.assertEqual(len(model.functions), count)
        self.assertEqual([func.line_number for func in model.functions], expected)
        for func in model.functions:
            self.assertEqual(func.body.count("{"), func.body.count("}"))
            self.assertEqual(len(func.parameters), 2)

    def test_empty_source(self):
        model = self.parser.parse("", "Empty")
        self.assertEqual(model.functions, ())
        self.assertEqual(model.state_variables, ())
        self.assertEqual(model.compiler_version, "unknown")
        self.assertIsNone(model.license)


class TestParameters(unittest.TestCase):
    """Test cases for parameter list parsing"""

    def test_indexed_and_qualifiers(self):
        params = parse_parameters("address indexed from, bytes calldata data, string memory name")
        self.assertEqual(
            [(p.name, p.type_name, p.indexed) for p in params],
            [("from", "address", True), ("data", "bytes", False), ("name", "string", False)],
        )

    def test_address_payable(self):
        params = parse_parameters("address payable to")
        self.assertEqual(params[0].type_name, "address payable")
        self.assertEqual(params[0].name, "to")

    def test_unnamed_parameters_dropped(self):
        self.assertEqual(parse_parameters("uint256, bool"), [])
        self.assertEqual(parse_parameters(""), [])

    def test_nested_types(self):
        params = parse_parameters("mapping(address => uint256) storage balances, uint256[] memory ids")
        self.assertEqual([p.name for p in params], ["balances", "ids"])
        self.assertEqual(params[0].type_name, "mapping(address => uint256)")


class TestMasking(unittest.TestCase):
    """Test cases for comment and string masking"""

    def test_length_and_line_breaks_preserved(self):
        source = 'a = "x // y"; // note\n/* multi\nline */ b = 1;'
        masked = mask_comments_and_strings(source)
        self.assertEqual(len(masked), len(source))
        self.assertEqual(masked.count("\n"), source.count("\n"))
        self.assertNotIn("note", masked)
        self.assertNotIn("multi", masked)
        self.assertIn("b = 1;", masked)
        self.assertIn('""', masked.replace(" ", ""))


if __name__ == "__main__":
    unittest.main()
