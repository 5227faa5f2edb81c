"""tests for the coverage builder"""

import pytest

from drcov import (
    BasicBlock,
    CoverageBuilder,
    CoverageData,
    ModuleEntry,
    ModuleTableVersion,
    ValidationError,
    builder,
)


class TestCoverageBuilder:
    """test coverage builder functionality"""

    def test_create_basic_coverage(self):
        """test creating coverage data with builder"""
        b = builder()
        b.set_flavor("test_tool")
        b.add_module("/bin/test", 0x400000, 0x500000, 0x401000)
        b.add_module("/lib/libc.so", 0x7F0000000000, 0x7F0000100000)
        b.add_coverage(0, 0x1000, 32)
        b.add_coverage(0, 0x2000, 16)
        b.add_coverage(1, 0x5000, 8)

        coverage = b.build()

        assert len(coverage.modules) == 2
        assert len(coverage.basic_blocks) == 3
        assert coverage.header.flavor == "test_tool"
        assert coverage.header.version == 2
        assert coverage.module_version == ModuleTableVersion.V2

    def test_builder_methods(self):
        """test builder method chaining"""
        coverage = (
            CoverageData.builder()
            .set_flavor("chain_test")
            .set_module_version(ModuleTableVersion.V3)
            .add_module("/bin/prog", 0x400000, 0x500000)
            .add_coverage(0, 0x1000, 32)
            .build()
        )

        assert isinstance(coverage, CoverageData)
        assert coverage.header.flavor == "chain_test"
        assert coverage.module_version == ModuleTableVersion.V3
        assert len(coverage.modules) == 1
        assert len(coverage.basic_blocks) == 1

    def test_last_setting_wins(self):
        """test repeated configuration keeps the last value"""
        coverage = (
            builder()
            .set_flavor("first")
            .set_flavor("second")
            .set_module_version(ModuleTableVersion.V4)
            .set_module_version(ModuleTableVersion.LEGACY)
            .build()
        )

        assert coverage.header.flavor == "second"
        assert coverage.module_version == ModuleTableVersion.LEGACY

    def test_sequential_module_ids(self):
        """test auto-assigned ids count up from zero"""
        coverage = (
            builder()
            .add_module("/a", 0x1000, 0x2000)
            .add_module("/b", 0x2000, 0x3000)
            .add_module("/c", 0x3000, 0x4000)
            .build()
        )

        assert [m.id for m in coverage.modules] == [0, 1, 2]

    def test_auto_module_defaults(self):
        """test auto-assigned modules leave optional fields absent"""
        module = builder().add_module("/a", 0x1000, 0x2000).build().modules[0]

        assert module == ModuleEntry(0, 0x1000, 0x2000, "/a")
        assert module.checksum is None

    def test_full_module(self):
        """test adding a fully specified module"""
        module = ModuleEntry(
            id=0,
            base=0x400000,
            end=0x450000,
            path="/bin/test",
            entry=0x401000,
            containing_id=-1,
            offset=0x1000,
            checksum=0x12345678,
            timestamp=0x87654321,
        )
        coverage = builder().add_full_module(module).build()

        assert coverage.modules == [module]

    def test_mixed_module_methods(self):
        """test auto and full modules interleave"""
        coverage = (
            builder()
            .add_module("/a", 0x1000, 0x2000)
            .add_full_module(ModuleEntry(1, 0x2000, 0x3000, "/b", checksum=1))
            .add_module("/c", 0x3000, 0x4000)
            .build()
        )

        assert [m.path for m in coverage.modules] == ["/a", "/b", "/c"]
        assert coverage.modules[2].id == 2

    def test_full_module_with_wrong_id(self):
        """test a full module whose id is not the next slot"""
        b = builder().add_module("/a", 0x1000, 0x2000)
        b.add_full_module(ModuleEntry(5, 0x2000, 0x3000, "/b"))

        with pytest.raises(ValidationError, match="Non-sequential module ID 5 at index 1"):
            b.build()

    def test_duplicate_full_module_id(self):
        """test two full modules claiming the same id"""
        b = (
            builder()
            .add_full_module(ModuleEntry(0, 0x1000, 0x2000, "/a"))
            .add_full_module(ModuleEntry(0, 0x2000, 0x3000, "/b"))
        )
        with pytest.raises(ValidationError):
            b.build()

    def test_invalid_block_reference(self):
        """test invalid coverage data"""
        with pytest.raises(ValidationError):
            builder().add_coverage(999, 0x1000, 32).build()

        with pytest.raises(ValidationError):
            builder().add_module("/a", 0x1000, 0x2000).add_coverage(1, 0, 4).build()

    def test_block_at_last_module(self):
        """test a block on the highest module id"""
        coverage = (
            builder()
            .add_module("/a", 0x1000, 0x2000)
            .add_module("/b", 0x2000, 0x3000)
            .add_coverage(1, 0, 4)
            .build()
        )
        assert coverage.basic_blocks == [BasicBlock(0, 4, 1)]

    def test_add_basic_block(self):
        """test adding BasicBlock values directly"""
        coverage = (
            builder()
            .add_module("/bin/test", 0x400000, 0x500000)
            .add_basic_block(BasicBlock(0x1000, 32, 0))
            .add_basic_blocks([BasicBlock(0x2000, 16, 0), BasicBlock(0x3000, 8, 0)])
            .build()
        )

        assert [bb.start for bb in coverage.basic_blocks] == [0x1000, 0x2000, 0x3000]

    def test_block_order_preserved(self):
        """test blocks keep insertion order regardless of module id"""
        coverage = (
            builder()
            .add_module("/a", 0x1000, 0x2000)
            .add_module("/b", 0x2000, 0x3000)
            .add_coverage(1, 0x30, 4)
            .add_coverage(0, 0x10, 4)
            .add_coverage(1, 0x20, 4)
            .build()
        )

        assert [(bb.module_id, bb.start) for bb in coverage.basic_blocks] == [
            (1, 0x30),
            (0, 0x10),
            (1, 0x20),
        ]

    def test_clear_coverage(self):
        """test clearing coverage data"""
        b = builder()
        b.add_module("/bin/test", 0x400000, 0x500000)
        b.add_coverage(0, 0x1000, 32)
        b.add_coverage(0, 0x2000, 16)

        assert len(b.data().basic_blocks) == 2

        b.clear_coverage()
        assert len(b.data().basic_blocks) == 0

    def test_build_detaches_result(self):
        """test later builder calls do not change built data"""
        b = builder().set_flavor("one").add_module("/a", 0x1000, 0x2000)
        first = b.build()

        b.set_flavor("two").add_module("/b", 0x2000, 0x3000).add_coverage(1, 0, 4)

        assert first.header.flavor == "one"
        assert len(first.modules) == 1
        assert first.basic_blocks == []

    def test_empty_build(self):
        """test building with nothing added"""
        coverage = CoverageBuilder().build()

        assert coverage.modules == []
        assert coverage.basic_blocks == []
        assert coverage.header.flavor == "drcov"

    def test_module_version_from_int(self):
        """test versions given as plain integers"""
        coverage = builder().set_module_version(4).build()
        assert coverage.module_version is ModuleTableVersion.V4

        with pytest.raises(ValueError):
            builder().set_module_version(7)
