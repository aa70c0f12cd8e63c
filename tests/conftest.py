from pathlib import Path
from typing import Dict

import pytest

from squiggleanchor.toy_data import make_toy_data


@pytest.fixture(scope="session")
def toy(tmp_path_factory) -> Dict[str, str]:
    return make_toy_data(outdir=tmp_path_factory.mktemp("toy"))


@pytest.fixture(scope="session")
def toy_ref(toy) -> str:
    import pysam

    with pysam.FastaFile(toy["ref_fa"]) as fa:
        return fa.fetch("chr1").upper()
