from __future__ import annotations

from dissect.cstruct import cstruct

# References:
# - https://github.com/berkeleydb/libdb/blob/master/src/dbinc/db_page.h
# - https://github.com/knqyf263/go-rpmdb/tree/master/pkg/bdb
bdb_def = """
#define HASH_MAGIC                  0x00061561
#define HASH_MAGIC_SWAPPED          0x61150600
#define METADATA_PAGE_SIZE          512
#define NO_ENCRYPTION               0

enum PageType : uint8 {
    INVALID         = 0,
    DUPLICATE       = 1,
    HASH_UNSORTED   = 2,                        // hash page, unsorted
    IBTREE          = 3,
    IRECNO          = 4,
    LBTREE          = 5,
    LRECNO          = 6,
    OVERFLOW        = 7,                        // holds a chunk of an off-page value
    HASHMETA        = 8,
    BTREEMETA       = 9,
    QAMMETA         = 10,
    QAMDATA         = 11,
    LDUP            = 12,
    HASH            = 13,                       // hash page, sorted
    HEAPMETA        = 14,
    HEAP            = 15,
    IHEAP           = 16
};

enum HashItemType : uint8 {
    KEYDATA         = 1,
    DUPLICATE       = 2,
    OFFPAGE         = 3,                        // value lives in a chain of overflow pages
    OFFDUP          = 4,
    BLOB            = 5
};

struct DBMeta {
    char        lsn[8];                         // 00-07
    uint32      pgno;                           // 08-11
    uint32      magic;                          // 12-15
    uint32      version;                        // 16-19
    uint32      pagesize;                       // 20-23
    uint8       encrypt_alg;                    // 24
    PageType    type;                           // 25
    uint8       metaflags;                      // 26
    uint8       unused1;                        // 27
    uint32      free;                           // 28-31
    uint32      last_pgno;                      // 32-35
    uint32      nparts;                         // 36-39
    uint32      key_count;                      // 40-43
    uint32      record_count;                   // 44-47
    uint32      flags;                          // 48-51
    char        uid[20];                        // 52-71
};

struct HashMeta {
    DBMeta      dbmeta;                         // 00-71
    uint32      max_bucket;                     // 72-75
    uint32      high_mask;                      // 76-79
    uint32      low_mask;                       // 80-83
    uint32      ffactor;                        // 84-87
    uint32      nelem;                          // 88-91
    uint32      h_charkey;                      // 92-95
};

struct PageHeader {
    char        lsn[8];                         // 00-07
    uint32      pgno;                           // 08-11
    uint32      prev_pgno;                      // 12-15
    uint32      next_pgno;                      // 16-19
    uint16      entries;                        // 20-21
    uint16      hf_offset;                      // 22-23
    uint8       level;                          // 24
    PageType    type;                           // 25
};

struct HashOffPage {
    HashItemType    type;
    char            unused[3];
    uint32          pgno;                       // first overflow page
    uint32          tlen;                       // total length of the value
};
"""

# Berkeley DB writes its pages in the byte order of the host that created the file
c_bdb = cstruct(endian="<").load(bdb_def)
c_bdb_be = cstruct(endian=">").load(bdb_def)

VALID_PAGE_SIZES = (512, 1024, 2048, 4096, 8192, 16384, 32768)
HASH_PAGE_TYPES = (c_bdb.PageType.HASH_UNSORTED.value, c_bdb.PageType.HASH.value)
HASH_INDEX_ENTRY_SIZE = 2
PAGE_HEADER_SIZE = len(c_bdb.PageHeader)
HASH_OFF_PAGE_SIZE = len(c_bdb.HashOffPage)
