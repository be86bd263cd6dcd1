import os
import sys

import pytest

# Ensure project root is first on sys.path so local packages like `core` are used
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from core.declarator import DeclaratorParser  # noqa: E402


ARCHIVE_SOURCE = """\
/* 1 */
struct __cppobj Archive
{
  Archive_vtbl *__vftable /*VFT*/;
  unsigned int m_flags; /* 0x004 */
  int m_version; /* 0x008 */
};

/* 2 */
struct /*VFT*/ Archive_vtbl
{
  void (__thiscall *~Archive)(Archive *this);
  int (__thiscall *InitForPacking)(Archive *this, const void *, unsigned int);
  int (__thiscall *InitForPacking)(Archive *this, unsigned int);
};

/* 3 */
struct __cppobj Archive::SetVersionRow
{
  Archive::SetVersionRow_vtbl *__vftable /*VFT*/;
  unsigned int m_row;
};

/* 4 */
struct /*VFT*/ Archive::SetVersionRow_vtbl
{
  void (__thiscall *~SetVersionRow)(Archive::SetVersionRow *this);
};

//----- (00401000) --------------------------------------------------------
int __thiscall Archive::InitForPacking(Archive *this, const void *data, unsigned int size)
{
  // a { brace in a comment
  this->m_version = 1; /* } */
  return 0;
}

//----- (00401100) --------------------------------------------------------
void *__thiscall Archive::`vector deleting destructor'(Archive *this, unsigned int a2)
{
  return this;
}
"""

TYPES_SOURCE = """\
/* 10 */
struct Flags
{
  unsigned int a : 1;
  unsigned int b : 1;
  unsigned int c : 30;
  int after;
};

/* 11 */
enum __bitmask RenderFlags : unsigned __int8
{
  RF_NONE = 0x0,
  RF_VISIBLE = 0x1,
  RF_SHADOW = 0x2,
};

/* 12 */
union Value
{
  int i;
  double d;
  char bytes[3];
};

/* 13 */
struct __cppobj DerivedArchive : Archive
{
  int m_extra; /* 0x00C */
};

/* 14 */
struct Combined
{
  Archive baseclass_0;
  Flags baseclass_c;
  int m_value;
};

/* 15 */
typedef int (__stdcall *FARPROC)();

/* 16 */
typedef bool __cdecl InputFilter(unsigned __int16);

/* 17 */
typedef unsigned __int16 flowqueueInterval_t;

/* 18 */
struct Holder
{
  RenderFlags flags;
  flowqueueInterval_t interval;
  Value value;
  FARPROC callback;
};
"""


@pytest.fixture
def declarator() -> DeclaratorParser:
    parser = DeclaratorParser()
    parser.reset_padding_counter()
    return parser


@pytest.fixture
def sample_sources():
    return {"archive.h": ARCHIVE_SOURCE, "types.h": TYPES_SOURCE}


@pytest.fixture
def sample_dir(tmp_path, sample_sources):
    for name, text in sample_sources.items():
        (tmp_path / name).write_text(text, encoding="utf-8")
    return tmp_path
