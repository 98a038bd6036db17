"""
pykadm5 Native Declarations

ABI-level declarations of the MIT krb5 and libkadm5 structures and
functions used by pykadm5, plus the numeric constants from ``kadm5/admin.h``
and the krb5/kadm5 error tables.

The cdef mirrors the public headers of MIT krb5 1.x. Only pointer-typed
handles are left opaque; every structure that pykadm5 reads or fills is
declared field by field so cffi computes the same layout as the C compiler.

Note:
    This module is internal. Nothing outside ``pykadm5.native`` should
    touch ``ffi`` or the values it allocates.
"""

from __future__ import annotations

from cffi import FFI

ffi = FFI()

# =============================================================================
# C DECLARATIONS
# =============================================================================

ffi.cdef(
    """
typedef int32_t krb5_int32;
typedef uint32_t krb5_ui_4;
typedef int16_t krb5_int16;
typedef uint16_t krb5_ui_2;
typedef uint8_t krb5_octet;
typedef krb5_int32 krb5_error_code;
typedef krb5_int32 krb5_timestamp;
typedef krb5_int32 krb5_deltat;
typedef krb5_int32 krb5_flags;
typedef krb5_int32 krb5_enctype;
typedef unsigned int krb5_kvno;
typedef unsigned int krb5_boolean;
typedef long kadm5_ret_t;

typedef struct _krb5_context *krb5_context;
typedef struct krb5_principal_data *krb5_principal;
typedef const struct krb5_principal_data *krb5_const_principal;
typedef struct _krb5_ccache *krb5_ccache;
typedef struct _krb5_keyblock krb5_keyblock;
typedef struct _krb5_key_data krb5_key_data;

typedef struct _krb5_tl_data {
    struct _krb5_tl_data *tl_data_next;
    krb5_int16 tl_data_type;
    krb5_ui_2 tl_data_length;
    krb5_octet *tl_data_contents;
} krb5_tl_data;

typedef struct _krb5_key_salt_tuple {
    krb5_enctype ks_enctype;
    krb5_int32 ks_salttype;
} krb5_key_salt_tuple;

typedef struct _kadm5_principal_ent_t {
    krb5_principal principal;
    krb5_timestamp princ_expire_time;
    krb5_timestamp last_pwd_change;
    krb5_timestamp pw_expiration;
    krb5_deltat max_life;
    krb5_principal mod_name;
    krb5_timestamp mod_date;
    krb5_flags attributes;
    krb5_kvno kvno;
    krb5_kvno mkvno;
    char *policy;
    long aux_attributes;
    krb5_deltat max_renewable_life;
    krb5_timestamp last_success;
    krb5_timestamp last_failed;
    krb5_kvno fail_auth_count;
    krb5_int16 n_key_data;
    krb5_int16 n_tl_data;
    krb5_tl_data *tl_data;
    krb5_key_data *key_data;
} kadm5_principal_ent_rec, *kadm5_principal_ent_t;

typedef struct _kadm5_policy_ent_t {
    char *policy;
    long pw_min_life;
    long pw_max_life;
    long pw_min_length;
    long pw_min_classes;
    long pw_history_num;
    long policy_refcnt;
    krb5_kvno pw_max_fail;
    krb5_deltat pw_failcnt_interval;
    krb5_deltat pw_lockout_duration;
    krb5_flags attributes;
    krb5_deltat max_life;
    krb5_deltat max_renewable_life;
    char *allowed_keysalts;
    krb5_int16 n_tl_data;
    krb5_tl_data *tl_data;
} kadm5_policy_ent_rec, *kadm5_policy_ent_t;

typedef struct _kadm5_config_params {
    long mask;
    char *realm;
    int kadmind_port;
    int kpasswd_port;
    char *admin_server;
    char *dbname;
    char *acl_file;
    char *dict_file;
    int mkey_from_kbd;
    char *stash_file;
    char *mkey_name;
    krb5_enctype enctype;
    krb5_deltat max_life;
    krb5_deltat max_rlife;
    krb5_timestamp expiration;
    krb5_flags flags;
    krb5_key_salt_tuple *keysalts;
    krb5_int32 num_keysalts;
    krb5_kvno kvno;
    int iprop_enabled;
    uint32_t iprop_ulogsize;
    krb5_deltat iprop_poll_time;
    char *iprop_logfile;
    int iprop_port;
    int iprop_resync_timeout;
    char *kadmind_listen;
    char *kpasswd_listen;
    char *iprop_listen;
} kadm5_config_params;

krb5_error_code kadm5_init_krb5_context(krb5_context *context);
void krb5_free_context(krb5_context context);
const char *krb5_get_error_message(krb5_context context, krb5_error_code code);
void krb5_free_error_message(krb5_context context, const char *msg);

krb5_error_code krb5_parse_name(krb5_context context, const char *name, krb5_principal *principal);
krb5_error_code krb5_unparse_name(krb5_context context, krb5_const_principal principal, char **name);
void krb5_free_unparsed_name(krb5_context context, char *val);
void krb5_free_principal(krb5_context context, krb5_principal val);
krb5_error_code krb5_sname_to_principal(krb5_context context, const char *hostname, const char *sname,
                                        krb5_int32 type, krb5_principal *ret_princ);

krb5_error_code krb5_cc_default(krb5_context context, krb5_ccache *ccache);
krb5_error_code krb5_cc_resolve(krb5_context context, const char *name, krb5_ccache *cache);
krb5_error_code krb5_cc_get_principal(krb5_context context, krb5_ccache cache, krb5_principal *principal);
krb5_error_code krb5_cc_close(krb5_context context, krb5_ccache cache);

krb5_error_code krb5_get_default_realm(krb5_context context, char **lrealm);
void krb5_free_default_realm(krb5_context context, char *lrealm);

kadm5_ret_t kadm5_init_with_password(krb5_context context, char *client_name, char *pass,
                                     char *service_name, kadm5_config_params *params,
                                     krb5_ui_4 struct_version, krb5_ui_4 api_version,
                                     char **db_args, void **server_handle);
kadm5_ret_t kadm5_init_with_skey(krb5_context context, char *client_name, char *keytab,
                                 char *service_name, kadm5_config_params *params,
                                 krb5_ui_4 struct_version, krb5_ui_4 api_version,
                                 char **db_args, void **server_handle);
kadm5_ret_t kadm5_init_with_creds(krb5_context context, char *client_name, krb5_ccache cc,
                                  char *service_name, kadm5_config_params *params,
                                  krb5_ui_4 struct_version, krb5_ui_4 api_version,
                                  char **db_args, void **server_handle);
kadm5_ret_t kadm5_init_anonymous(krb5_context context, char *client_name,
                                 char *service_name, kadm5_config_params *params,
                                 krb5_ui_4 struct_version, krb5_ui_4 api_version,
                                 char **db_args, void **server_handle);
kadm5_ret_t kadm5_flush(void *server_handle);
kadm5_ret_t kadm5_destroy(void *server_handle);

kadm5_ret_t kadm5_create_principal_3(void *server_handle, kadm5_principal_ent_t ent, long mask,
                                     int n_ks_tuple, krb5_key_salt_tuple *ks_tuple, char *pass);
kadm5_ret_t kadm5_delete_principal(void *server_handle, krb5_principal principal);
kadm5_ret_t kadm5_modify_principal(void *server_handle, kadm5_principal_ent_t ent, long mask);
kadm5_ret_t kadm5_rename_principal(void *server_handle, krb5_principal source, krb5_principal target);
kadm5_ret_t kadm5_get_principal(void *server_handle, krb5_principal principal,
                                kadm5_principal_ent_t ent, long mask);
kadm5_ret_t kadm5_chpass_principal(void *server_handle, krb5_principal principal, char *pass);
kadm5_ret_t kadm5_randkey_principal_3(void *server_handle, krb5_principal principal,
                                      krb5_boolean keepold, int n_ks_tuple,
                                      krb5_key_salt_tuple *ks_tuple,
                                      krb5_keyblock **keyblocks, int *n_keys);
kadm5_ret_t kadm5_free_principal_ent(void *server_handle, kadm5_principal_ent_t ent);
kadm5_ret_t kadm5_get_principals(void *server_handle, char *exp, char ***princs, int *count);

kadm5_ret_t kadm5_create_policy(void *server_handle, kadm5_policy_ent_t ent, long mask);
kadm5_ret_t kadm5_delete_policy(void *server_handle, char *policy);
kadm5_ret_t kadm5_modify_policy(void *server_handle, kadm5_policy_ent_t ent, long mask);
kadm5_ret_t kadm5_get_policy(void *server_handle, char *policy, kadm5_policy_ent_t ent);
kadm5_ret_t kadm5_free_policy_ent(void *server_handle, kadm5_policy_ent_t ent);
kadm5_ret_t kadm5_get_policies(void *server_handle, char *exp, char ***pols, int *count);

kadm5_ret_t kadm5_free_name_list(void *server_handle, char **names, int count);
kadm5_ret_t kadm5_get_privs(void *server_handle, long *privs);
"""
)

# =============================================================================
# VERSIONS AND SERVICE NAMES
# =============================================================================

KADM5_STRUCT_VERSION = 0x12345601
KADM5_API_VERSION_2 = 0x12345702
KADM5_API_VERSION_3 = 0x12345703
KADM5_API_VERSION_4 = 0x12345704

KADM5_ADMIN_SERVICE = "kadmin/admin"
KRB5_NT_SRV_HST = 3

# =============================================================================
# FIELD MASKS
# =============================================================================

KADM5_PRINCIPAL = 0x000001
KADM5_PRINC_EXPIRE_TIME = 0x000002
KADM5_PW_EXPIRATION = 0x000004
KADM5_LAST_PWD_CHANGE = 0x000008
KADM5_ATTRIBUTES = 0x000010
KADM5_MAX_LIFE = 0x000020
KADM5_MOD_TIME = 0x000040
KADM5_MOD_NAME = 0x000080
KADM5_KVNO = 0x000100
KADM5_MKVNO = 0x000200
KADM5_AUX_ATTRIBUTES = 0x000400
KADM5_POLICY = 0x000800
KADM5_POLICY_CLR = 0x001000
KADM5_MAX_RLIFE = 0x002000
KADM5_LAST_SUCCESS = 0x004000
KADM5_LAST_FAILED = 0x008000
KADM5_FAIL_AUTH_COUNT = 0x010000
KADM5_KEY_DATA = 0x020000
KADM5_TL_DATA = 0x040000

KADM5_PRINCIPAL_NORMAL_MASK = 0x41FFFF

KADM5_PW_MAX_LIFE = 0x00004000
KADM5_PW_MIN_LIFE = 0x00008000
KADM5_PW_MIN_LENGTH = 0x00010000
KADM5_PW_MIN_CLASSES = 0x00020000
KADM5_PW_HISTORY_NUM = 0x00040000
KADM5_REF_COUNT = 0x00080000
KADM5_PW_MAX_FAILURE = 0x00100000
KADM5_PW_FAILURE_COUNT_INTERVAL = 0x00200000
KADM5_PW_LOCKOUT_DURATION = 0x00400000
KADM5_POLICY_ATTRIBUTES = 0x00800000
KADM5_POLICY_MAX_LIFE = 0x01000000
KADM5_POLICY_MAX_RLIFE = 0x02000000
KADM5_POLICY_ALLOWED_KEYSALTS = 0x04000000
KADM5_POLICY_TL_DATA = 0x08000000

# =============================================================================
# CONFIG PARAMETER MASKS
# =============================================================================

KADM5_CONFIG_REALM = 0x00000001
KADM5_CONFIG_DBNAME = 0x00000002
KADM5_CONFIG_STASH_FILE = 0x00000100
KADM5_CONFIG_ACL_FILE = 0x00002000
KADM5_CONFIG_KADMIND_PORT = 0x00004000
KADM5_CONFIG_ADMIN_SERVER = 0x00010000
KADM5_CONFIG_DICT_FILE = 0x00020000
KADM5_CONFIG_KPASSWD_PORT = 0x00080000

# =============================================================================
# STATUS CODES
# =============================================================================

KADM5_OK = 0

_KADM5_BASE = 43787520

KADM5_FAILURE = _KADM5_BASE + 0
KADM5_AUTH_GET = _KADM5_BASE + 1
KADM5_AUTH_ADD = _KADM5_BASE + 2
KADM5_AUTH_MODIFY = _KADM5_BASE + 3
KADM5_AUTH_DELETE = _KADM5_BASE + 4
KADM5_AUTH_INSUFFICIENT = _KADM5_BASE + 5
KADM5_BAD_DB = _KADM5_BASE + 6
KADM5_DUP = _KADM5_BASE + 7
KADM5_RPC_ERROR = _KADM5_BASE + 8
KADM5_NO_SRV = _KADM5_BASE + 9
KADM5_BAD_HIST_KEY = _KADM5_BASE + 10
KADM5_NOT_INIT = _KADM5_BASE + 11
KADM5_UNK_PRINC = _KADM5_BASE + 12
KADM5_UNK_POLICY = _KADM5_BASE + 13
KADM5_BAD_MASK = _KADM5_BASE + 14
KADM5_BAD_CLASS = _KADM5_BASE + 15
KADM5_BAD_LENGTH = _KADM5_BASE + 16
KADM5_BAD_POLICY = _KADM5_BASE + 17
KADM5_BAD_PRINCIPAL = _KADM5_BASE + 18
KADM5_BAD_AUX_ATTR = _KADM5_BASE + 19
KADM5_BAD_HISTORY = _KADM5_BASE + 20
KADM5_BAD_MIN_PASS_LIFE = _KADM5_BASE + 21
KADM5_PASS_Q_TOOSHORT = _KADM5_BASE + 22
KADM5_PASS_Q_CLASS = _KADM5_BASE + 23
KADM5_PASS_Q_DICT = _KADM5_BASE + 24
KADM5_PASS_REUSE = _KADM5_BASE + 25
KADM5_PASS_TOOSOON = _KADM5_BASE + 26
KADM5_POLICY_REF = _KADM5_BASE + 27
KADM5_INIT = _KADM5_BASE + 28
KADM5_BAD_PASSWORD = _KADM5_BASE + 29
KADM5_PROTECT_PRINCIPAL = _KADM5_BASE + 30
KADM5_BAD_SERVER_HANDLE = _KADM5_BASE + 31
KADM5_BAD_STRUCT_VERSION = _KADM5_BASE + 32
KADM5_OLD_STRUCT_VERSION = _KADM5_BASE + 33
KADM5_NEW_STRUCT_VERSION = _KADM5_BASE + 34
KADM5_BAD_API_VERSION = _KADM5_BASE + 35
KADM5_OLD_LIB_API_VERSION = _KADM5_BASE + 36
KADM5_OLD_SERVER_API_VERSION = _KADM5_BASE + 37
KADM5_NEW_LIB_API_VERSION = _KADM5_BASE + 38
KADM5_NEW_SERVER_API_VERSION = _KADM5_BASE + 39
KADM5_SECURE_PRINC_MISSING = _KADM5_BASE + 40
KADM5_NO_RENAME_SALT = _KADM5_BASE + 41
KADM5_BAD_CLIENT_PARAMS = _KADM5_BASE + 42
KADM5_BAD_SERVER_PARAMS = _KADM5_BASE + 43
KADM5_AUTH_LIST = _KADM5_BASE + 44
KADM5_AUTH_CHANGEPW = _KADM5_BASE + 45
KADM5_GSS_ERROR = _KADM5_BASE + 46
KADM5_BAD_TL_TYPE = _KADM5_BASE + 47
KADM5_MISSING_CONF_PARAMS = _KADM5_BASE + 48
KADM5_BAD_SERVER_NAME = _KADM5_BASE + 49
KADM5_AUTH_SETKEY = _KADM5_BASE + 50
KADM5_SETKEY_DUP_ENCTYPES = _KADM5_BASE + 51
KADM5_SETV4KEY_INVAL_ENCTYPE = _KADM5_BASE + 52
KADM5_SETKEY3_ETYPE_MISMATCH = _KADM5_BASE + 53
KADM5_MISSING_KRB5_CONF_PARAMS = _KADM5_BASE + 54
KADM5_XDR_FAILURE = _KADM5_BASE + 55
KADM5_CANT_RESOLVE = _KADM5_BASE + 56
KADM5_PASS_Q_GENERIC = _KADM5_BASE + 57
KADM5_BAD_KEYSALTS = _KADM5_BASE + 58
KADM5_SETKEY_BAD_KVNO = _KADM5_BASE + 59
KADM5_AUTH_EXTRACT = _KADM5_BASE + 60
KADM5_PROTECT_KEYS = _KADM5_BASE + 61
KADM5_AUTH_INITIAL = _KADM5_BASE + 62

KRB5_OK = 0

_KRB5_BASE = -1765328384

KRB5KDC_ERR_C_PRINCIPAL_UNKNOWN = _KRB5_BASE + 6
KRB5KDC_ERR_S_PRINCIPAL_UNKNOWN = _KRB5_BASE + 7
KRB5KDC_ERR_PREAUTH_FAILED = _KRB5_BASE + 24
KRB5_PARSE_ILLCHAR = _KRB5_BASE + 133
KRB5_PARSE_MALFORMED = _KRB5_BASE + 134
KRB5_CC_BADNAME = _KRB5_BASE + 139
KRB5_CC_NOTFOUND = _KRB5_BASE + 141
KRB5_KDC_UNREACH = _KRB5_BASE + 156
KRB5_KT_NOTFOUND = _KRB5_BASE + 181
KRB5_FCC_NOFILE = _KRB5_BASE + 195

KRB5_KDB_NOENTRY = -1780008443
