"""
Tests for local source discovery and the async parser front end
"""

import pytest

from securechain.errors import ContractReadError, PathNotFound
from securechain.parser import AsyncContractParser
from securechain.sources import LocalSourceProvider


@pytest.fixture
def project(tmp_path, bank_source):
    (tmp_path / "Bank.sol").write_text(bank_source, encoding="utf-8")
    (tmp_path / "README.md").write_text("# docs", encoding="utf-8")
    (tmp_path / "sources").mkdir()
    (tmp_path / "sources" / "coin.move").write_text("module 0x1::coin { fun f() {} }", encoding="utf-8")
    (tmp_path / "node_modules" / "dep").mkdir(parents=True)
    (tmp_path / "node_modules" / "dep" / "Dep.sol").write_text("contract Dep {}", encoding="utf-8")
    return tmp_path


@pytest.mark.asyncio
async def test_directory_walk(project):
    units = await LocalSourceProvider().list_units(str(project))

    assert [unit.name for unit in units] == ["Bank", "coin"]
    assert units[0].file_path == str(project / "Bank.sol")
    assert units[0].metadata == {"source": "local", "extension": ".sol"}
    assert units[1].metadata["extension"] == ".move"


@pytest.mark.asyncio
async def test_extension_filter(project):
    units = await LocalSourceProvider(allowed_extensions=["move"]).list_units(str(project))
    assert [unit.name for unit in units] == ["coin"]


@pytest.mark.asyncio
async def test_single_file_ignores_extension(project):
    units = await LocalSourceProvider().list_units(str(project / "README.md"))
    assert [unit.name for unit in units] == ["README"]
    assert units[0].source_code == "# docs"


@pytest.mark.asyncio
async def test_missing_path(tmp_path):
    with pytest.raises(PathNotFound):
        await LocalSourceProvider().list_units(str(tmp_path / "nope"))


@pytest.mark.asyncio
async def test_size_limit(project):
    provider = LocalSourceProvider(max_file_size_mb=0.00001)
    units = await provider.list_units(str(project))
    assert units == []


@pytest.mark.asyncio
async def test_async_parser(project):
    model = await AsyncContractParser().parse_file(str(project / "Bank.sol"))
    assert model.name == "Bank"
    assert model.file_path == str(project / "Bank.sol")
    assert [func.name for func in model.functions] == ["deposit", "withdraw"]


@pytest.mark.asyncio
async def test_async_parser_missing_file(tmp_path):
    with pytest.raises(ContractReadError):
        await AsyncContractParser().parse_file(str(tmp_path / "Missing.sol"))
