from __future__ import annotations

from dissect.cstruct import cstruct

# References:
# - https://github.com/rpm-software-management/rpm/blob/master/lib/backend/ndb/rpmpkg.c
ndb_def = """
#define NDB_HEADER_MAGIC            1349349458      // b"RpmP"
#define NDB_DB_VERSION              0
#define NDB_SLOT_MAGIC              1953459283      // b"Slot"
#define NDB_BLOB_MAGIC              1398959170      // b"BlbS"
#define NDB_SLOT_PAGE_SIZE          4096
#define NDB_BLOCK_SIZE              16
#define NDB_MAX_SLOT_PAGES          2048

struct Header {
    uint32      magic;
    uint32      version;
    uint32      generation;
    uint32      num_pages;                          // number of slot pages
    uint32      next_pkg_index;
    uint32      reserved[3];
};

struct SlotEntry {
    uint32      magic;
    uint32      pkg_index;                          // 0 = empty
    uint32      blk_offset;                         // points to Blob, in blocks
    uint32      blk_count;
};

struct Blob {
    uint32      magic;
    uint32      pkg_index;
    uint32      checksum;                           // adler32 (rfc1950)
    uint32      size;
    // char     data[size];
    // char     tail[16];
};
"""

c_ndb = cstruct(endian="<").load(ndb_def)

HEADER_SIZE = len(c_ndb.Header)
SLOT_SIZE = len(c_ndb.SlotEntry)
BLOB_HEADER_SIZE = len(c_ndb.Blob)

# The header takes the place of the first slots of the first page
SLOTS_PER_PAGE = c_ndb.NDB_SLOT_PAGE_SIZE // SLOT_SIZE
HEADER_SLOTS = HEADER_SIZE // SLOT_SIZE
