"""Pytest configuration and fixtures for mmhook_generator tests"""

import pytest
import tempfile
import shutil
from pathlib import Path
import sys

# Add src to path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing"""
    temp = tempfile.mkdtemp()
    yield Path(temp)
    shutil.rmtree(temp, ignore_errors=True)


@pytest.fixture
def source_root(temp_dir):
    """Create a mock C# source root directory"""
    root = temp_dir / 'Project'
    root.mkdir()
    return root


@pytest.fixture
def sample_game_cs():
    """Types that hooks point at"""
    return """
using System.Collections.Generic;

namespace Game
{
    public class Item { }

    public class Player
    {
        public int health;

        public bool Bar(int x) { return x > 0; }
        public static void Baz() { }
        public void Update() { }
        public void Hit(int damage) { }
        public void Hit(int damage, string source) { }
        public List<Item> Items(Item seed, int count) { return null; }
        public int Level { get; set; }

        public class Stats
        {
            public class Modifier
            {
                public float Apply(float value) { return value; }
            }
        }
    }
}
"""


@pytest.fixture
def sample_mod_cs():
    """A mod that hooks Player methods"""
    return """
namespace MyMod
{
    public class Mod
    {
        public void Load()
        {
            On.Game.Player.Bar += OnBar;
            On.Game.Player.Update += OnUpdate;
            On.Game.Player.Bar -= OnBar;
            IL.Game.Player.Update += EditUpdate;
            On.Game.Player.Stats.Modifier.Apply += OnApply;
            On.Game.Missing.Thing += OnThing;
            Events.Game.Player.Update += Nope;
        }
    }
}
"""
