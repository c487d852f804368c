from dissect.cstruct import cstruct

sym_def = """
/////////////////////////////////////////////////////////////////////////
// CodeView symbol record definitions
// https://github.com/microsoft/microsoft-pdb/blob/master/include/cvinfo.h
/////////////////////////////////////////////////////////////////////////
enum SYM_ENUM_e : uint16 {
    S_COMPILE       =  0x0001,  // Compile flags symbol
    S_SSEARCH       =  0x0005,  // Start Search
    S_END           =  0x0006,  // Block, procedure, "with" or thunk end
    S_SKIP          =  0x0007,  // Reserve symbol space in $$Symbols table
    S_ALIGN         =  0x0402,  // Used for page alignment of symbols

    S_FRAMEPROC     =  0x1012,  // extra frame and proc information
    S_OBJNAME       =  0x1101,  // path to object file name
    S_THUNK32       =  0x1102,  // Thunk Start
    S_BLOCK32       =  0x1103,  // block start
    S_WITH32        =  0x1104,  // with start
    S_LABEL32       =  0x1105,  // code label
    S_REGISTER      =  0x1106,  // Register variable
    S_CONSTANT      =  0x1107,  // constant symbol
    S_UDT           =  0x1108,  // User defined type
    S_BPREL32       =  0x110b,  // BP-relative
    S_LDATA32       =  0x110c,  // Module-local symbol
    S_GDATA32       =  0x110d,  // Global data symbol
    S_PUB32         =  0x110e,  // a public symbol (CV internal reserved)
    S_LPROC32       =  0x110f,  // Local procedure start
    S_GPROC32       =  0x1110,  // Global procedure start
    S_REGREL32      =  0x1111,  // register relative address
    S_LTHREAD32     =  0x1112,  // local thread storage
    S_GTHREAD32     =  0x1113,  // global thread storage

    S_PROCREF       =  0x1125,  // Reference to a procedure
    S_DATAREF       =  0x1126,  // Reference to data
    S_LPROCREF      =  0x1127,  // Local Reference to a procedure
    S_TRAMPOLINE    =  0x112c,  // trampoline thunks
    S_SECTION       =  0x1136,  // A COFF section in a PE executable
    S_COFFGROUP     =  0x1137,  // A COFF group
    S_EXPORT        =  0x1138,  // A export
    S_CALLSITEINFO  =  0x1139,  // Indirect call site information
    S_FRAMECOOKIE   =  0x113a,  // Security cookie information
    S_COMPILE3      =  0x113c,  // Replacement for S_COMPILE2
    S_ENVBLOCK      =  0x113d,  // Environment block split off from S_COMPILE2
    S_LOCAL         =  0x113e,  // defines a local symbol in optimized code
    S_DEFRANGE_REGISTER = 0x1141, // ranges for en-registered symbol
    S_DEFRANGE_FRAMEPOINTER_REL = 0x1142, // range for stack symbol.
    S_LPROC32_ID     = 0x1146,
    S_GPROC32_ID     = 0x1147,
    S_BUILDINFO      = 0x114c, // build information.
    S_INLINESITE     = 0x114d, // inlined function callsite.
    S_INLINESITE_END = 0x114e,
    S_PROC_ID_END    = 0x114f,
    S_LPROC32_DPC    = 0x1155, // DPC local procedure start
    S_LPROC32_DPC_ID = 0x1156,
    S_CALLEES        = 0x115a,
    S_CALLERS        = 0x115b,
    S_HEAPALLOCSITE  = 0x115e, // heap allocation site
};

struct SymbolRecordHeader {
    // Length of the symbol record in bytes, without this field.
    uint16 length;
    SYM_ENUM_e type;
};

// S_SECTION
struct SectionSymbol {
    uint16 section;         // Section number
    uint8  alignment;       // Alignment of this section (power of 2)
    uint8  reserved;        // Reserved.  Must be zero.
    uint32 rva;
    uint32 length;
    uint32 characteristics;
    char   name[];
};

// S_COFFGROUP
struct CoffGroupSymbol {
    uint32 length;
    uint32 characteristics;
    uint32 offset;          // Symbol offset
    uint16 section;         // Symbol segment
    char   name[];
};

// S_GPROC32, S_LPROC32, S_GPROC32_ID, S_LPROC32_ID, S_LPROC32_DPC, S_LPROC32_DPC_ID
struct ProcedureSymbol {
    uint32 parent;          // pointer to the parent
    uint32 end;             // pointer to this blocks end
    uint32 next;            // pointer to next symbol
    uint32 length;          // Proc length
    uint32 debug_start_offset;
    uint32 debug_end_offset;
    uint32 type_index;
    uint32 offset;
    uint16 section;
    uint8  flags;           // CV_PROCFLAGS
    char   name[];
};

// S_BLOCK32
struct BlockSymbol {
    uint32 parent;
    uint32 end;
    uint32 length;          // Block length
    uint32 offset;          // Offset in code segment
    uint16 section;         // segment of label
    char   name[];
};

// S_THUNK32
struct ThunkSymbol {
    uint32 parent;
    uint32 end;
    uint32 next;
    uint32 offset;
    uint16 section;
    uint16 length;          // length of thunk
    uint8  ordinal;         // THUNK_ORDINAL specifying type of thunk
    char   name[];
    // variant portion of thunk follows the name
};

// S_INLINESITE
struct InlineSiteSymbol {
    uint32 parent;
    uint32 end;
    uint32 inlinee;         // CV_ItemId of inlinee
    // an array of compressed binary annotations follows
};

// S_GDATA32, S_LDATA32, S_GTHREAD32, S_LTHREAD32
struct DataSymbol {
    uint32 type_index;
    uint32 offset;
    uint16 section;
    char   name[];
};

// S_PUB32
struct PublicSymbol {
    uint32 flags;           // CVPSF
    uint32 offset;
    uint16 section;
    char   name[];
};

// S_LABEL32
struct LabelSymbol {
    uint32 offset;
    uint16 section;
    uint8  flags;           // CV_PROCFLAGS
    char   name[];
};

// S_OBJNAME
struct ObjectNameSymbol {
    uint32 signature;
    char   name[];
};

// S_COMPILE3
struct CompileSymbol {
    uint32 flags;           // low byte is the CV_CFL_LANG language index
    uint16 machine;         // target processor
    uint16 frontend_major;
    uint16 frontend_minor;
    uint16 frontend_build;
    uint16 frontend_qfe;
    uint16 backend_major;
    uint16 backend_minor;
    uint16 backend_build;
    uint16 backend_qfe;
    char   version[];
};
"""

c_sym = cstruct()
c_sym.load(sym_def)


# Module symbol substreams start with this signature
CV_SIGNATURE_C13 = 4
