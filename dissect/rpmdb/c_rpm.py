from __future__ import annotations

from dissect.cstruct import cstruct

# References:
# - https://github.com/rpm-software-management/rpm/blob/master/include/rpm/rpmtag.h
# - https://github.com/rpm-software-management/rpm/blob/master/lib/header.cc
# - https://github.com/rpm-software-management/rpm/blob/master/include/rpm/rpmpgp.h
rpm_def = """
#define HEADER_MAX_BYTES            0x10000000      // 256 MiB
#define REGION_TAG_COUNT            16              // sizeof(EntryInfo)

enum TagType : uint32 {
    NULL            = 0,
    CHAR            = 1,
    INT8            = 2,
    INT16           = 3,
    INT32           = 4,
    INT64           = 5,
    STRING          = 6,
    BIN             = 7,
    STRING_ARRAY    = 8,
    I18NSTRING      = 9
};

enum Tag : int32 {
    HEADERIMAGE         = 61,
    HEADERSIGNATURES    = 62,
    HEADERIMMUTABLE     = 63,
    HEADERREGIONS       = 64,
    HEADERI18NTABLE     = 100,

    SIGSIZE             = 257,
    SIGPGP              = 259,
    SIGMD5              = 261,
    SIGGPG              = 262,
    PUBKEYS             = 266,
    DSAHEADER           = 267,
    RSAHEADER           = 268,
    SHA1HEADER          = 269,
    LONGSIGSIZE         = 270,
    LONGARCHIVESIZE     = 271,
    SHA256HEADER        = 273,

    NAME                = 1000,
    VERSION             = 1001,
    RELEASE             = 1002,
    EPOCH               = 1003,
    SUMMARY             = 1004,
    DESCRIPTION         = 1005,
    BUILDTIME           = 1006,
    BUILDHOST           = 1007,
    INSTALLTIME         = 1008,
    SIZE                = 1009,
    DISTRIBUTION        = 1010,
    VENDOR              = 1011,
    LICENSE             = 1014,
    PACKAGER            = 1015,
    GROUP               = 1016,
    URL                 = 1020,
    OS                  = 1021,
    ARCH                = 1022,
    FILESIZES           = 1028,
    FILEMODES           = 1030,
    FILEDIGESTS         = 1035,
    FILEFLAGS           = 1037,
    FILEUSERNAME        = 1039,
    FILEGROUPNAME       = 1040,
    SOURCERPM           = 1044,
    PROVIDENAME         = 1047,
    REQUIREFLAGS        = 1048,
    REQUIRENAME         = 1049,
    REQUIREVERSION      = 1050,
    RPMVERSION          = 1064,
    PROVIDEFLAGS        = 1112,
    PROVIDEVERSION      = 1113,
    DIRINDEXES          = 1116,
    BASENAMES           = 1117,
    DIRNAMES            = 1118,
    DISTURL             = 1123,
    INSTALLTID          = 1128,
    PLATFORM            = 1132,
    DISTTAG             = 1155,
    FILEDIGESTALGO      = 5011,
    NEVRA               = 5016,
    MODULARITYLABEL     = 5096
};

enum HashAlgo : uint32 {
    MD5             = 1,
    SHA1            = 2,
    RIPEMD160       = 3,
    MD2             = 5,
    TIGER192        = 6,
    HAVAL_5_160     = 7,
    SHA256          = 8,
    SHA384          = 9,
    SHA512          = 10,
    SHA224          = 11,
    SHA3_256        = 12,
    SHA3_512        = 14
};

flag FileFlags : uint32 {
    CONFIG          = 0x0001,
    DOC             = 0x0002,
    ICON            = 0x0004,
    MISSINGOK       = 0x0008,
    NOREPLACE       = 0x0010,
    SPECFILE        = 0x0020,
    GHOST           = 0x0040,
    LICENSE         = 0x0080,
    README          = 0x0100,
    PUBKEY          = 0x0800,
    ARTIFACT        = 0x1000
};

struct Header {
    uint32      il;                             // number of index entries
    uint32      dl;                             // length of the data segment
};

struct EntryInfo {
    Tag         tag;
    TagType     type;
    int32       offset;                         // negative in a region trailer
    uint32      count;
};

// OpenPGP signature packets as found in the SIGPGP, RSAHEADER and DSAHEADER tags,
// the leading byte is the packet tag
struct PGPSignatureV3 {
    uint8       tag;
    uint8       sig_type;
    uint8       version;
    char        _pad0[3];
    uint8       pubkey_algo;
    uint8       hash_algo;
    uint32      date;
    char        key_id[8];
};

struct PGPSignatureV3Long {
    uint8       tag;
    uint8       sig_type;
    uint8       version;
    char        _pad0[2];
    uint8       pubkey_algo;
    uint8       hash_algo;
    char        _pad1[4];
    uint32      date;
    char        key_id[8];
};

struct PGPSignatureV4 {
    uint8       tag;
    uint8       sig_type;
    uint8       version;
    char        _pad0[2];
    uint8       pubkey_algo;
    uint8       hash_algo;
    char        _pad1[17];
    char        key_id[8];
    char        _pad2[2];
    uint32      date;
};
"""

# RPM always stores its headers in network byte order
c_rpm = cstruct(endian=">").load(rpm_def)

# Keyed by plain integers, cstruct enum members do not hash like the values they hold
TYPE_SIZES = {
    c_rpm.TagType.NULL.value: 0,
    c_rpm.TagType.CHAR.value: 1,
    c_rpm.TagType.INT8.value: 1,
    c_rpm.TagType.INT16.value: 2,
    c_rpm.TagType.INT32.value: 4,
    c_rpm.TagType.INT64.value: 8,
    c_rpm.TagType.STRING.value: -1,
    c_rpm.TagType.BIN.value: 1,
    c_rpm.TagType.STRING_ARRAY.value: -1,
    c_rpm.TagType.I18NSTRING.value: -1,
}

TYPE_ALIGN = {
    c_rpm.TagType.NULL.value: 1,
    c_rpm.TagType.CHAR.value: 1,
    c_rpm.TagType.INT8.value: 1,
    c_rpm.TagType.INT16.value: 2,
    c_rpm.TagType.INT32.value: 4,
    c_rpm.TagType.INT64.value: 8,
    c_rpm.TagType.STRING.value: 1,
    c_rpm.TagType.BIN.value: 1,
    c_rpm.TagType.STRING_ARRAY.value: 1,
    c_rpm.TagType.I18NSTRING.value: 1,
}

REGION_TAGS = (c_rpm.Tag.HEADERIMAGE.value, c_rpm.Tag.HEADERSIGNATURES.value, c_rpm.Tag.HEADERIMMUTABLE.value)
STRING_TYPES = (c_rpm.TagType.STRING.value, c_rpm.TagType.STRING_ARRAY.value, c_rpm.TagType.I18NSTRING.value)
